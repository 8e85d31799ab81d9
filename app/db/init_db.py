"""
Create the fee tables on the configured database.

    python -m app.db.init_db
"""
import asyncio

from app.core.config import settings
from app.db.session import engine, init_models


async def main() -> None:
    await init_models()
    await engine.dispose()
    print(f"✅ Tables created on {settings.database_url.split('@')[-1]}")


if __name__ == "__main__":
    asyncio.run(main())
