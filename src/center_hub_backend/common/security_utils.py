'''
Password hashing, kept apart from the JWT code so the ORM-facing scripts
and the test factories can hash without importing the service layer.
'''
from passlib.context import CryptContext

# --- Password Hashing ---
class HashedPassword:
    pwd_context = CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__default_rounds=12,
        bcrypt__min_rounds=12
    )

    @classmethod
    def verify(cls, plain_password: str, hashed_password: str | None) -> bool:
        # Accounts imported without a password cannot log in.
        if not hashed_password:
            return False
        return cls.pwd_context.verify(plain_password, hashed_password)

    @classmethod
    def get_hash(cls, password: str) -> str:
        return cls.pwd_context.hash(password)

    @classmethod
    def needs_rehash(cls, hashed_password: str) -> bool:
        """True when the stored hash was made with older scheme settings."""
        return cls.pwd_context.needs_update(hashed_password)
