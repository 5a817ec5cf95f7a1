from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = "sqlite:///./pathlab.db"
    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    api_base_url: str = "http://localhost:8000"
    allowed_origins: str = "http://localhost:8501"
    session_ttl_hours: int = 12

    patient_id_prefix: str = "PAT"
    patient_id_padding: int = 6
    invoice_prefix: str = "INV"
    booking_prefix: str = "PB"

    # "net_sum" or "legacy"; see DESIGN.md for the discount open question
    net_payable_mode: str = "net_sum"
    currency_symbol: str = "₹"
    lab_name: str = "Pathology Laboratory"
    lab_address: str = ""

    catalog_fuzzy_threshold: int = 70
    seed_catalog: bool = True


settings = Settings()
