import asyncio
import os

from dotenv import load_dotenv
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine

from src.core.database import resolve_async_database_url
from src.shared.timeslots import normalize_hhmm

# 1. Load the .env file
load_dotenv()

DB_LABELS = {
    "postgresql": "PostgreSQL",
    "mysql": "MySQL",
    "sqlite": "SQLite (tests)",
}

HEALTH_QUERIES = {
    "postgresql": "SELECT version();",
    "mysql": "SELECT VERSION();",
}


async def verify_database():
    print("-" * 30)
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        print("❌ Error: DATABASE_URL is not set")
        return False

    try:
        async_url = resolve_async_database_url(db_url)
        url = make_url(async_url)
    except Exception as exc:  # noqa: BLE001 - surface clear setup errors
        print(f"❌ Unsupported database configuration: {exc}")
        return False

    backend = url.get_backend_name()
    label = DB_LABELS.get(backend, backend)
    print(f"🔍 Checking {label} connection...")
    print(f"ℹ️  DSN: {url.render_as_string(hide_password=True)}")

    query = HEALTH_QUERIES.get(backend, "SELECT 1")

    try:
        engine = create_async_engine(async_url, echo=False)
        async with engine.connect() as conn:
            result = await conn.execute(text(query))
            version = result.scalar()
            print(f"✅ {label} connection OK: {version}")
        await engine.dispose()
        return True
    except Exception as e:  # noqa: BLE001 - surface connection failure
        print(f"❌ {label} connection failed: {e}")
        return False


def verify_clinic_hours():
    print("-" * 30)
    print("🔍 Checking clinic working hours...")
    opens = os.getenv("CLINIC_OPENS_AT", "09:00")
    closes = os.getenv("CLINIC_CLOSES_AT", "17:00")
    slot = os.getenv("SLOT_DURATION_MINUTES", "30")
    try:
        opens, closes = normalize_hhmm(opens), normalize_hhmm(closes)
        slot_minutes = int(slot)
    except ValueError as exc:
        print(f"❌ Invalid working hours configuration: {exc}")
        return False
    if opens >= closes or slot_minutes <= 0:
        print(f"❌ Working hours {opens}-{closes} with {slot} minute slots make no bookable slot")
        return False
    print(f"✅ Clinic open {opens}-{closes}, {slot_minutes} minute slots")
    return True


async def main():
    print("🚀 Verifying environment configuration...")

    db_ok = await verify_database()
    hours_ok = verify_clinic_hours()

    print("-" * 30)
    if db_ok and hours_ok:
        print("🎉 All core settings look correct.")
    else:
        print("⚠️  Warning: configuration problems found, check your .env file and database container.")

if __name__ == "__main__":
    asyncio.run(main())
