import os

# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/stock_ledger_db")

# Application Metadata
PROJECT_NAME = "Retail Stock Ledger Service"
VERSION = "1.0.0"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Forecasting collaborator (Gemini)
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

# Forecast run configuration
FORECAST_TIMEOUT_SECONDS = float(os.getenv("FORECAST_TIMEOUT_SECONDS", 30)) # Max wait for the AI call before falling back
FORECAST_CACHE_HOURS = int(os.getenv("FORECAST_CACHE_HOURS", 24)) # Freshness window for stored forecasts
FORECAST_HORIZON_DAYS = int(os.getenv("FORECAST_HORIZON_DAYS", 30))
FORECAST_ORDER_WINDOW = int(os.getenv("FORECAST_ORDER_WINDOW", 200)) # Latest N orders used for the sales snapshot

# Listing limits
MOVEMENT_LIST_LIMIT = int(os.getenv("MOVEMENT_LIST_LIMIT", 50))
ALERT_LIST_LIMIT = int(os.getenv("ALERT_LIST_LIMIT", 50))

# Analytics dashboard
ANALYTICS_ORDER_WINDOW = int(os.getenv("ANALYTICS_ORDER_WINDOW", 100)) # Latest N orders for sales by category
ANALYTICS_TREND_MONTHS = int(os.getenv("ANALYTICS_TREND_MONTHS", 6))
ANALYTICS_ALERT_LIMIT = int(os.getenv("ANALYTICS_ALERT_LIMIT", 20))
ANALYTICS_MOVEMENT_LIMIT = int(os.getenv("ANALYTICS_MOVEMENT_LIMIT", 10))
