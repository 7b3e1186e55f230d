from decimal import Decimal

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

from .services.reconciliation import DEFAULT_TAX_RATE
from .services.validator import AMOUNT_TOLERANCE

load_dotenv(".env.local")

class Settings(BaseSettings):
    DEFAULT_TAX_RATE: Decimal = DEFAULT_TAX_RATE
    AMOUNT_TOLERANCE: Decimal = AMOUNT_TOLERANCE
    LOG_LEVEL: str = "INFO"

settings = Settings()
