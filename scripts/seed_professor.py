"""
Seed Development Professor

Creates a professor account for local development and prints an access
token for it. Running it again for the same email reuses the existing
account and prints a fresh token.

Usage:
    python scripts/seed_professor.py --email ada@example.edu --department Biology
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import select

from research_engine.core.config import settings
from research_engine.core.database import create_engine, create_session_factory
from research_engine.core.security import create_access_token
from research_engine.modules.professors.models import Professor


async def seed_professor(email: str, first_name: str, last_name: str, department: str) -> None:
    """Create the professor if missing and print a token."""
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)

    async with session_factory() as db:
        result = await db.execute(select(Professor).where(Professor.email == email))
        professor = result.scalar_one_or_none()

        if professor:
            print(f"Professor already exists: {email}")
        else:
            professor = Professor(
                email=email,
                first_name=first_name,
                last_name=last_name,
                department=department,
            )
            db.add(professor)
            await db.commit()
            await db.refresh(professor)
            print("Professor created successfully!")

        print(f"  ID: {professor.id}")
        print(f"  Name: {professor.full_name}")
        print(f"  Department: {professor.department}")
        print(f"  Token: {create_access_token({'sub': str(professor.id), 'email': email})}")

    await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a development professor account")
    parser.add_argument("--email", default="professor@example.edu")
    parser.add_argument("--first-name", default="Ada")
    parser.add_argument("--last-name", default="Lovelace")
    parser.add_argument("--department", default="Computer Science")
    args = parser.parse_args()

    asyncio.run(seed_professor(args.email, args.first_name, args.last_name, args.department))


if __name__ == "__main__":
    main()
