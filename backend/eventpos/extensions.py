# Overview: Flask extension instances for the ledger database and migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Reads inside a ledger transaction must never flush pending writes; every
# service loads what it needs first and flushes explicitly.
db = SQLAlchemy(session_options={"autoflush": False})
migrate = Migrate()
