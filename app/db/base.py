# app/db/base.py

"""
Imports every ORM model so Alembic (and create_all) can discover them.
Whenever you add a new model, import it here.
"""
from app.db.models.business import Business
from app.db.models.customer import Customer
from app.db.models.appointment import Appointment
from app.db.models.daily_log import DailyLog
from app.db.session import engine, Base

async def init_db(bind=None):
    """Create all tables (tests and local dev; production uses Alembic)."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
