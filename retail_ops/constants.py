# retail_ops/constants.py
DB_FILE_NAME = "retail_ops.db"
LOG_DIR_NAME = "logs"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1"

# Portable backup documents
BACKUP_VERSION = "2.1"
BACKUP_EXTENSION = ".rbak"

# Weight/cash comparisons never use exact equality
STOCK_TOLERANCE = 0.005
MIN_SELLABLE_WEIGHT = 0.1

NOTIFICATION_TIMEOUT_MS = 4000
MISSION_TICK_MS = 5000
AUTOSAVE_DELAY_MS = 750

WALK_IN_CUSTOMER_ID = "WALK_IN"
WALK_IN_CUSTOMER_NAME = "Walk-in / Guest"
DEFAULT_SALES_REP = "Admin"

PAYMENT_METHODS = ("CASH", "BANK")

ADJUST_PERSONAL = "PERSONAL"
ADJUST_LOSS = "LOSS"
ADJUST_CORRECTION = "CORRECTION"
ADJUSTMENT_KINDS = (ADJUST_PERSONAL, ADJUST_LOSS, ADJUST_CORRECTION)

LOSS_EXPENSE_CATEGORY = "Loss/Waste"

SEVERITIES = ("SUCCESS", "ERROR", "WARNING", "INFO")
