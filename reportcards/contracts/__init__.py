"""JSON schema contracts shipped with the package (template files, diagnostic log)."""

from pathlib import Path

CONTRACTS_DIR = Path(__file__).parent
TEMPLATE_SCHEMA_PATH = CONTRACTS_DIR / "template_schema.json"
DIAGNOSTIC_LOG_SCHEMA_PATH = CONTRACTS_DIR / "diagnostic_log_schema.json"
