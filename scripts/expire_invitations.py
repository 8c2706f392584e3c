import asyncio
import os
import sys

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app.core.db import SessionLocal
from app.core.logging import setup_logging
from app.modules.invitations.service import InvitationService

async def main():
    """
    Marks every pending invitation past its expiry as expired.
    """
    setup_logging()
    print("Expiring overdue invitations...")
    async with SessionLocal() as db:
        count = await InvitationService(db).expire_overdue()
    print(f"Done. {count} invitation(s) expired.")

if __name__ == "__main__":
    asyncio.run(main())
