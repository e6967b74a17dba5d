"""
First-run seeding: the bootstrap admin account and, optionally, a demo site.

Both functions are idempotent and safe to call on every startup.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from site_attendance.core.config import settings
from site_attendance.core.enums import Role
from site_attendance.core.security import get_password_hash
from site_attendance.models.site import Site, Worker
from site_attendance.models.user import User

logger = logging.getLogger(__name__)

DEMO_SITE = {"name": "Downtown Construction Site", "location": "Mumbai, Maharashtra"}

# (username, role, name, email)
DEMO_USERS = [
    ("demo_foreman", Role.FOREMAN, "John Smith", "john.smith@construction.com"),
    ("demo_site_incharge", Role.SITE_INCHARGE, "Sarah Johnson", "sarah.johnson@construction.com"),
    ("demo_admin", Role.ADMIN, "Michael Davis", "michael.davis@construction.com"),
]

# (name, father_name, designation, daily_wage, phone)
DEMO_WORKERS = [
    ("Rajesh Kumar", "Mahesh Kumar", "Mason", 800, "9876543210"),
    ("Suresh Sharma", "Naresh Sharma", "Carpenter", 900, None),
    ("Ramesh Yadav", "Kailash Yadav", "Helper", 600, None),
    ("Dinesh Gupta", "Harish Gupta", "Electrician", 1200, None),
    ("Mukesh Singh", "Sohan Singh", "Plumber", 1000, None),
    ("Vikash Jha", "Ramesh Jha", "Mason", 750, None),
    ("Ravi Verma", "Shiv Verma", "Helper", 650, None),
    ("Sandeep Roy", "Umesh Roy", "Carpenter", 850, None),
    ("Anil Tiwari", "Shankar Tiwari", "Welder", 1100, None),
    ("Deepak Pandey", "Ajay Pandey", "Helper", 600, None),
    ("Gopal Sharma", "Raghav Sharma", "Mason", 800, None),
    ("Krishnan Nair", "Mohan Nair", "Supervisor", 1500, None),
]


async def seed_first_admin(session: AsyncSession) -> User | None:
    """Create the bootstrap admin unless the username is already taken."""
    result = await session.execute(
        select(User).where(User.username == settings.FIRST_ADMIN_USERNAME)
    )
    if result.scalar_one_or_none() is not None:
        return None

    admin = User(
        username=settings.FIRST_ADMIN_USERNAME,
        hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
        name=settings.FIRST_ADMIN_NAME,
        role=Role.ADMIN.value,
    )
    session.add(admin)
    await session.commit()
    logger.info(
        "Default admin created: %s (password: <redacted>)",
        settings.FIRST_ADMIN_USERNAME,
    )
    return admin


async def seed_demo_data(session: AsyncSession) -> bool:
    """Populate one demo site with its three accounts and twelve workers.

    Skipped when any site already exists. Returns True if data was written.
    """
    site_count = (await session.execute(select(func.count(Site.id)))).scalar_one()
    if site_count:
        return False

    site = Site(**DEMO_SITE, incharge_name="", is_active=True)
    session.add(site)
    await session.flush()

    password = get_password_hash(settings.DEMO_PASSWORD)
    for username, role, name, email in DEMO_USERS:
        existing = await session.execute(select(User.id).where(User.username == username))
        if existing.scalar_one_or_none() is not None:
            continue
        user = User(
            username=username,
            hashed_password=password,
            name=name,
            email=email,
            role=role.value,
            site_id=None if role == Role.ADMIN else site.id,
        )
        session.add(user)
        await session.flush()
        if role == Role.SITE_INCHARGE:
            site.incharge_id = user.id
            site.incharge_name = user.name

    for name, father_name, designation, wage, phone in DEMO_WORKERS:
        session.add(
            Worker(
                name=name,
                father_name=father_name,
                designation=designation,
                daily_wage=wage,
                site_id=site.id,
                phone=phone,
            )
        )

    await session.commit()
    logger.info("Demo data seeded: site %s with %d workers", site.name, len(DEMO_WORKERS))
    return True
