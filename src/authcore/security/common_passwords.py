"""Static denylist of passwords too common to accept, stored lower-cased."""

COMMON_PASSWORDS: frozenset[str] = frozenset(
    {
        "123456",
        "12345678",
        "123456789",
        "1234567890",
        "12345",
        "1234567",
        "111111",
        "000000",
        "123123",
        "654321",
        "666666",
        "888888",
        "112233",
        "121212",
        "123321",
        "147258369",
        "password",
        "password1",
        "password123",
        "password@123",
        "password!",
        "p@ssw0rd",
        "p@ssword1",
        "passw0rd",
        "passw0rd!",
        "qwerty",
        "qwerty123",
        "qwerty@123",
        "qwertyuiop",
        "asdfghjkl",
        "zxcvbnm",
        "1q2w3e4r",
        "1q2w3e4r5t",
        "abc123",
        "abcd1234",
        "abcd@1234",
        "iloveyou",
        "iloveyou1",
        "admin",
        "admin123",
        "admin@123",
        "administrator",
        "welcome",
        "welcome1",
        "welcome123",
        "welcome@123",
        "letmein",
        "letmein1",
        "monkey",
        "dragon",
        "football",
        "baseball",
        "sunshine",
        "princess",
        "superman",
        "trustno1",
        "master",
        "shadow",
        "michael",
        "jennifer",
        "starwars",
        "whatever",
        "freedom",
        "computer",
        "internet",
        "secret",
        "secret123",
        "changeme",
        "changeme123",
        "default",
        "guest",
        "test1234",
        "test@123",
        "user1234",
        "login123",
        "summer2024",
        "winter2024",
        "spring2024",
        "autumn2024",
        "indonesia",
        "indonesia1",
        "jakarta",
        "bismillah",
        "sayang",
        "sayangku",
        "rahasia",
        "rahasia123",
        "katasandi",
        "merdeka",
        "garuda",
        "correct horse battery staple",
        "the quick brown fox jumps over the lazy dog",
        "let me in please now",
        "i love you so much forever",
    }
)
