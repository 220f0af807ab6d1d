from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str

    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 120  # 2 hours

    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    # Document templates
    TEMPLATES_DIR: str = "templates"
    CONSENT_TEMPLATE_ID: str = "rss-application"
    CONSENT_TEMPLATE_FILENAME: str = "RSS_Application_2026_Template.pdf"
    FILLED_PDF_FILENAME: str = "RSS_Application_Filled.pdf"

    # Uploads (local fallback when S3 is not configured)
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_MB: int = 10

    # AWS S3 Configuration
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_BUCKET_NAME: str = ""
    AWS_REGION: str = "eu-west-2"

    TIMEZONE: str = "Europe/Jersey"

    # Used by seed.py
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_PASSWORD: str = ""

    class Config:
        env_file = ".env"


settings = Settings()
