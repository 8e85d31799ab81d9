from decimal import Decimal
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field("sqlite+aiosqlite:///./fees.db", alias="DATABASE_URL")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    # Fallback fee amounts used when no active fee structure is configured.
    default_class_annual_fee: Decimal = Field(Decimal("50000"), alias="DEFAULT_CLASS_ANNUAL_FEE")
    default_class_terms: int = Field(3, ge=1, le=4, alias="DEFAULT_CLASS_TERMS")
    default_tuition_fee: Decimal = Field(Decimal("40000"), alias="DEFAULT_TUITION_FEE")
    default_exam_fee: Decimal = Field(Decimal("5000"), alias="DEFAULT_EXAM_FEE")
    default_activity_fee: Decimal = Field(Decimal("3000"), alias="DEFAULT_ACTIVITY_FEE")
    default_library_fee: Decimal = Field(Decimal("1000"), alias="DEFAULT_LIBRARY_FEE")
    default_sports_fee: Decimal = Field(Decimal("1000"), alias="DEFAULT_SPORTS_FEE")
    default_transport_fee: Decimal = Field(Decimal("10000"), alias="DEFAULT_TRANSPORT_FEE")
    default_hostel_annual_fee: Decimal = Field(Decimal("80000"), alias="DEFAULT_HOSTEL_ANNUAL_FEE")
    default_hostel_terms: int = Field(3, ge=1, le=4, alias="DEFAULT_HOSTEL_TERMS")

    # Transport fee is always billed over this many terms, independent of the class structure.
    transport_fee_terms: int = Field(3, ge=1, le=4, alias="TRANSPORT_FEE_TERMS")

    # Attempts for a payment write that hits an ID collision or a concurrent snapshot update.
    payment_max_retries: int = Field(3, ge=1, alias="PAYMENT_MAX_RETRIES")

    school_name: str = Field("Your School Name", alias="SCHOOL_NAME")
    school_address: str = Field("School Address", alias="SCHOOL_ADDRESS")
    school_phone: str = Field("School Phone", alias="SCHOOL_PHONE")
    school_email: str = Field("school@email.com", alias="SCHOOL_EMAIL")
    school_principal: str = Field("Principal Name", alias="SCHOOL_PRINCIPAL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
