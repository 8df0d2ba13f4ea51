from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./quotes.db"
    COMPANY_NAME: str = "Northcoast Stone"
    LOG_LEVEL: str = "INFO"

    # Organisation pricing defaults. A PricingSettings row overrides these per field
    MATERIAL_PRICING_BASIS: str = "PER_SQUARE_METRE"  # 'PER_SQUARE_METRE' | 'PER_SLAB'
    CURRENCY: str = "AUD"
    TAX_RATE: float = 10.0  # percent (GST)

    # Per-service unit choices. Blank = use the unit stored on the ServiceRate row.
    CUTTING_UNIT: str = ""
    POLISHING_UNIT: str = ""
    INSTALLATION_UNIT: str = ""

    class Config:
        env_file = ".env"


settings = Settings()
