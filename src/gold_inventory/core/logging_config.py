import logging
import sys

class NamespaceFilter(logging.Filter):
    def __init__(self, allowed_namespaces=None):
        super().__init__()
        self.allowed_namespaces = allowed_namespaces if allowed_namespaces is not None else []

    def filter(self, record):
        if not self.allowed_namespaces:
            return True # If no namespaces are specified, allow all records
        # Allow record if its name starts with any of the allowed namespaces
        return any(record.name.startswith(ns) for ns in self.allowed_namespaces)

log_formatter = logging.Formatter(
    fmt="%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

app_logger = logging.getLogger("gold_inventory")
app_logger.setLevel(logging.INFO)

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setFormatter(log_formatter)

# --- Namespace-based Filter (Optional) ---
# To only see the sync traffic, for example:
#
# allowed_log_namespaces = ["gold_inventory.features.items", "gold_inventory.remote"]
# namespace_filter = NamespaceFilter(allowed_log_namespaces)
# console_handler.addFilter(namespace_filter)
#
# If `allowed_log_namespaces` is empty or None, the filter will allow all logs.
app_logger.addHandler(console_handler)

# --- Namespace-specific logging levels ---
# Pull/push decisions are logged at DEBUG by the items feature.
logging.getLogger("gold_inventory.features.items").setLevel(logging.DEBUG)

# The HTTP client logs every request at INFO; keep it quiet unless debugging.
logging.getLogger("httpx").setLevel(logging.WARNING)

# Note: modules use logging.getLogger(__name__), which creates loggers like
# "gold_inventory.features.items.service". These inherit levels from their
# parents or from the "gold_inventory" logger if not specifically set.
