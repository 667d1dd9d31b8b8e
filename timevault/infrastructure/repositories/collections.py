"""Collection names shared by the repositories and the demo seed data."""
from timevault.application.interfaces.document_store import UniqueIndex

USERS = "users"
WATCHES = "watches"
TRANSACTIONS = "transactions"
SERIAL_VALIDATION = "serial_validation"

# Mirrors ux_documents_watch_serial in the documents migration
WATCH_SERIAL_INDEX = UniqueIndex(
    name="ux_documents_watch_serial",
    collection=WATCHES,
    field="serial_number",
    where=(("status", ("active", "pending")),),
)

UNIQUE_INDEXES: tuple[UniqueIndex, ...] = (WATCH_SERIAL_INDEX,)
