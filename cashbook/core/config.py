from pydantic_settings import BaseSettings
from pydantic import model_validator
from typing import Dict, List
from urllib.parse import quote_plus
from dotenv import load_dotenv
import os


load_dotenv()


DEFAULT_PROVENANCE_TAGS: Dict[str, str] = {
    "manual": "[الصندوق]",
    "expense_system": "[نظام المصروفات]",
    "sales_system": "[المبيعات]",
    "purchase_system": "[المشتريات]",
    "installment_system": "[الأقساط]",
    "check_system": "[الشيكات]",
    "payroll_system": "[الرواتب]",
}

DEFAULT_CATEGORY_MAPS: Dict[str, Dict[str, str]] = {
    "manual": {
        "sales": "sales",
        "installments": "sales",
        "supplies": "purchases",
        "operational": "purchases",
        "purchases": "purchases",
        "payroll": "payroll",
        "salaries": "payroll",
        "rent": "rent",
        "utilities": "utilities",
        "marketing": "marketing",
        "expenses": "other",
    },
    "expense_system": {
        "إيجار المحل": "rent",
        "الكهرباء والمياه": "utilities",
        "رواتب الموظفين": "payroll",
        "مصاريف التسويق": "marketing",
        "صيانة المعدات": "other",
        "مصاريف النقل": "other",
        "أخرى": "other",
        "rent": "rent",
        "utilities": "utilities",
        "payroll": "payroll",
        "marketing": "marketing",
    },
    "sales_system": {"sales_invoice": "sales"},
    "purchase_system": {"supplier_payment": "purchases"},
    "installment_system": {"installment": "sales"},
    "check_system": {"customer_check": "sales"},
    "payroll_system": {"salary": "payroll", "bonus": "payroll", "allowance": "payroll"},
}


class Settings(BaseSettings):
    APP_ENV: str = "local"
    APP_NAME: str = "Cashbook Reconciler"

    # Database URL - can be provided directly or constructed from components
    DATABASE_URL: str | None = None

    # Individual database components (for constructing DATABASE_URL)
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_NAME: str = ""

    # Alert thresholds
    LOW_STOCK_ENABLED: bool = True
    CHECK_DUE_WINDOW_DAYS: int = 3
    INACTIVE_CUSTOMER_DAYS: int = 90
    INACTIVE_CUSTOMER_THRESHOLD: int = 10
    INACTIVE_SUPPLIER_DAYS: int = 60
    CASH_FLOW_WINDOW_DAYS: int = 30
    ALERT_HISTORY_LIMIT: int = 50
    ALERT_REPEAT_COOLDOWN_MINUTES: int = 0

    # Reconciliation
    AMOUNT_EPSILON: float = 0.01
    DEFAULT_CONFLICT_POLICY: str = "merge"
    PROVENANCE_TAGS: Dict[str, str] = DEFAULT_PROVENANCE_TAGS
    CATEGORY_MAPS: Dict[str, Dict[str, str]] = DEFAULT_CATEGORY_MAPS

    # Rollups
    DEFAULT_CREDIT_LIMIT: float = 10000
    DEFAULT_SUPPLIER_RATING: float = 4.0
    LOYALTY_POINT_UNIT: int = 100

    # Scheduler
    SCHEDULER_ENABLED: bool = False
    INTEGRATION_INTERVAL_SECONDS: int = 60
    SCHEDULED_TENANTS: List[str] = []

    class Config:
        env_file = ".env" if os.getenv("APP_ENV", "local") == "local" else ".env.prod"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @model_validator(mode='after')
    def construct_database_url(self):
        """Construct DATABASE_URL from components, falling back to a local sqlite file."""
        if not self.DATABASE_URL:
            if not self.DB_NAME:
                self.DATABASE_URL = "sqlite:///./cashbook.db"
            else:
                password_part = f":{quote_plus(self.DB_PASSWORD)}" if self.DB_PASSWORD else ""
                self.DATABASE_URL = f"postgresql://{self.DB_USER}{password_part}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

        if self.DEFAULT_CONFLICT_POLICY not in ("keep_manual", "keep_system", "merge"):
            raise ValueError("DEFAULT_CONFLICT_POLICY must be keep_manual, keep_system or merge")
        return self

    @property
    def database_url(self) -> str:
        """Get DATABASE_URL as a guaranteed string."""
        assert self.DATABASE_URL is not None, "DATABASE_URL must be set"
        return self.DATABASE_URL

    def category_map_for(self, reference_type: str) -> Dict[str, str]:
        return dict(self.CATEGORY_MAPS.get(reference_type, {}))

    def provenance_tag_for(self, reference_type: str) -> str:
        return self.PROVENANCE_TAGS.get(reference_type, f"[{reference_type}]")


settings = Settings()
