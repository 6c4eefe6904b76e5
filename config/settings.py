from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # App
    APP_NAME: str = "Prediction Market AMM"
    DEBUG: bool = False  # Safe default for production; set DEBUG=True in .env for local dev
    LOG_LEVEL: str = "INFO"

    # Pricing (all amounts in micro-units, 1_000_000 = 1.0)
    DEFAULT_VIRTUAL_LIQUIDITY: int = 50_000 * 1_000_000
    MIN_PRICE: float = 0.01
    PRICE_CAP: float = 0.99

    # Settlement
    PROTOCOL_FEE_BPS: int = 100  # charged on profit only
    ALLOWED_ORACLES: list[str] = ["admin", "uma", "chainlink"]

    # Sessions
    DEFAULT_YIELD_RATE_BPS: int = 520  # 5.2% APY
    UNRESOLVED_BET_POLICY: str = "BLOCK"  # BLOCK | FORFEIT | EXCLUDE


settings = Settings()
