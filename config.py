import os


def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in {"1", "true", "yes"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    WTF_CSRF_ENABLED = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "IDR")
    APPROVAL_LIMIT_MANAGER = os.environ.get("APPROVAL_LIMIT_MANAGER", "1000")
    APPROVAL_LIMIT_CFO = os.environ.get("APPROVAL_LIMIT_CFO", "5000")
    APPROVAL_LIMIT_CEO = os.environ.get("APPROVAL_LIMIT_CEO", "10000")
    ORG_SEED_FILE = os.environ.get("ORG_SEED_FILE")
    EXTRACTION_API_URL = os.environ.get(
        "EXTRACTION_API_URL", "https://montpro.app.n8n.cloud/webhook/expense-management"
    )
    FINANCE_AI_URL = os.environ.get(
        "FINANCE_AI_URL", "https://montpro.app.n8n.cloud/webhook/expense-ai-response"
    )
    FINANCE_AI_MOCK = _flag("FINANCE_AI_MOCK", "false")
    EXTERNAL_API_TIMEOUT = int(os.environ.get("EXTERNAL_API_TIMEOUT", 30))
    PROPOSAL_WORKERS = int(os.environ.get("PROPOSAL_WORKERS", 2))
    CLAIM_MAX_RETRIES = int(os.environ.get("CLAIM_MAX_RETRIES", 5))


class DevelopmentConfig(Config):
    DEBUG = True
    FINANCE_AI_MOCK = _flag("FINANCE_AI_MOCK", "true")


class TestingConfig(Config):
    TESTING = True
    WTF_CSRF_ENABLED = False
    FINANCE_AI_MOCK = True
    ORG_SEED_FILE = None
    LOG_LEVEL = "DEBUG"


class ProductionConfig(Config):
    DEBUG = False


config_by_name = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
