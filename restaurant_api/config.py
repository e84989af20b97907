
import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///local.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Reservation slots
    OPENING_TIME = os.getenv("OPENING_TIME", "17:00")
    LAST_SEATING = os.getenv("LAST_SEATING", "21:00")
    SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "30"))
    TABLES_PER_SLOT = int(os.getenv("TABLES_PER_SLOT", "10"))
    SEATS_PER_TABLE = int(os.getenv("SEATS_PER_TABLE", "4"))
    CLOSED_DATES = os.getenv("CLOSED_DATES", "")
    MAX_PARTY_SIZE = int(os.getenv("MAX_PARTY_SIZE", "8"))
    RESERVATION_RATE_LIMIT = int(os.getenv("RESERVATION_RATE_LIMIT", "12"))

    # Orders
    DELIVERY_FEE = os.getenv("DELIVERY_FEE", "5.00")
    MINIMUM_ORDER = os.getenv("MINIMUM_ORDER", "5.00")
    MAX_ITEM_QUANTITY = int(os.getenv("MAX_ITEM_QUANTITY", "20"))
    PICKUP_READY_MINUTES = int(os.getenv("PICKUP_READY_MINUTES", "30"))
    DELIVERY_READY_MINUTES = int(os.getenv("DELIVERY_READY_MINUTES", "45"))

    # Dashboard
    DASHBOARD_WINDOW_DAYS = int(os.getenv("DASHBOARD_WINDOW_DAYS", "30"))
    POPULAR_ITEMS_LIMIT = int(os.getenv("POPULAR_ITEMS_LIMIT", "5"))

    ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "dev-admin-token")
    MANAGER_TOKEN = os.getenv("MANAGER_TOKEN", "")
    STAFF_TOKEN = os.getenv("STAFF_TOKEN", "")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "WARNING"
    TABLES_PER_SLOT = 5
    SEATS_PER_TABLE = 4
    CLOSED_DATES = "2030-12-25"
    MAX_PARTY_SIZE = 8
    RESERVATION_RATE_LIMIT = 10_000
    ADMIN_TOKEN = "test-admin-token"
    MANAGER_TOKEN = "test-manager-token"
    STAFF_TOKEN = "test-staff-token"
