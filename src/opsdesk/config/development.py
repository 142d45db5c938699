import os

from opsdesk.config import csv_env

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "opsdesk"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
TOKEN_TTL_MINUTES = int(os.getenv("TOKEN_TTL_MINUTES", "720"))

# Outgoing mail; notifications are skipped when SMTP_SERVER is empty
SMTP_SERVER = os.getenv("SMTP_SERVER", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
FROM_EMAIL = os.getenv("FROM_EMAIL", "no-reply@opsdesk.local")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

# Approver positions (comma separated in env)
OVERTIME_LEVEL1_POSITIONS = csv_env(
    "OVERTIME_LEVEL1_POSITIONS",
    ("Admin Tech", "Technical Support Engineer", "Operations Technical Lead"),
)
OVERTIME_LEVEL2_POSITIONS = csv_env("OVERTIME_LEVEL2_POSITIONS", ("Operations Manager", "Admin Tech"))
OVERTIME_AUTO_APPROVE_POSITIONS = csv_env("OVERTIME_AUTO_APPROVE_POSITIONS", ("Operations Manager",))
LEAVE_DIRECTOR_ONLY_POSITIONS = csv_env("LEAVE_DIRECTOR_ONLY_POSITIONS", ("Operations Manager", "HR", "Accounting"))

IMPORT_BATCH_SIZE = int(os.getenv("IMPORT_BATCH_SIZE", "100"))
IMPORT_MAX_ROWS = int(os.getenv("IMPORT_MAX_ROWS", "1500"))
