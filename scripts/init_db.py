"""Script to initialize the database."""

import asyncio
import sys
import uuid

from sqlalchemy import insert, select, text

from app.database import engine
from app.models import metadata, users

DEMO_DOCTORS = [
    ("sarah.jones@clinic.example", "Sarah", "Jones", "general"),
    ("amir.haddad@clinic.example", "Amir", "Haddad", "cardiology"),
    ("lena.fischer@clinic.example", "Lena", "Fischer", "pediatrics"),
    ("tomas.ruiz@clinic.example", "Tomas", "Ruiz", "orthopedics"),
    ("mei.chen@clinic.example", "Mei", "Chen", "neurology"),
    ("olu.adeyemi@clinic.example", "Olu", "Adeyemi", "dermatology"),
]


async def init_db(seed: bool = False) -> None:
    """Create all tables, optionally adding one demo doctor per department."""
    async with engine.begin() as conn:
        if engine.dialect.name == "postgresql":
            await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))

        await conn.run_sync(metadata.create_all)
        print("✓ Database initialized successfully!")

        if not seed:
            return

        existing = set((await conn.execute(select(users.c.email))).scalars().all())
        rows = [
            {
                "id": uuid.uuid4(),
                "email": email,
                "first_name": first_name,
                "last_name": last_name,
                "role": "doctor",
                "department": department,
                "is_active": True,
            }
            for email, first_name, last_name, department in DEMO_DOCTORS
            if email not in existing
        ]
        if rows:
            await conn.execute(insert(users), rows)
        print(f"✓ Seeded {len(rows)} demo doctors")


if __name__ == "__main__":
    asyncio.run(init_db(seed="--seed" in sys.argv[1:]))
