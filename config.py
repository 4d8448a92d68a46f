import os


def _env_int(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "mysecretkey")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///tasks.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Token settings (minutes)
    JWT_SECRET = os.getenv("JWT_SECRET") or SECRET_KEY
    JWT_ALGORITHM = "HS256"
    JWT_TTL = _env_int("JWT_TTL", 60)
    JWT_REFRESH_TTL = _env_int("JWT_REFRESH_TTL", 20160)

    # "owner_or_creator" or "owner_only"
    TASK_ACCESS_POLICY = os.getenv("TASK_ACCESS_POLICY", "owner_or_creator")

    BCRYPT_LOG_ROUNDS = 12
    BCRYPT_HANDLE_LONG_PASSWORDS = True

    API_PREFIX = "/api"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET = "test-secret"
    BCRYPT_LOG_ROUNDS = 4
    TASK_ACCESS_POLICY = "owner_or_creator"
