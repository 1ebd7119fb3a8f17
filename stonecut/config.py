from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./stonecut.db"
    COMPANY_NAME: str = "Stone Fabrication Sales"
    CURRENCY: str = "toman"

    # Pricing defaults. Riser and landing carry the mandatory markup by default
    DEFAULT_MANDATORY_PERCENTAGE: float = 20.0
    DEFAULT_LAYER_MANDATORY_PERCENTAGE: float = 20.0

    # Catalog
    SEED_CATALOG_ON_STARTUP: bool = True
    CATALOG_SEARCH_LIMIT: int = 20

    class Config:
        env_file = ".env"


settings = Settings()
