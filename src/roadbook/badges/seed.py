"""Badge seed data: one definition per criteria tag."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roadbook.badges.criteria import BadgeCriteria
from roadbook.db.models import Badge

logger = logging.getLogger(__name__)

BADGE_SEED_DATA: list[dict] = [
    {
        "name": "First Trip",
        "description": "Logged a first driving session",
        "image_url": "/badges/first-trip.svg",
        "category": "BEGINNER",
        "criteria": BadgeCriteria.FIRST_SESSION.value,
    },
    {
        "name": "Road Regular",
        "description": "Completed 10 driving sessions",
        "image_url": "/badges/road-regular.svg",
        "category": "BEGINNER",
        "criteria": BadgeCriteria.COMPLETE_10_SESSIONS.value,
    },
    {
        "name": "Night Driver",
        "description": "Drove at night",
        "image_url": "/badges/night-driver.svg",
        "category": "ADVANCED",
        "criteria": BadgeCriteria.NIGHT_DRIVING.value,
    },
    {
        "name": "Highway Pilot",
        "description": "Drove on a highway",
        "image_url": "/badges/highway-driver.svg",
        "category": "ADVANCED",
        "criteria": BadgeCriteria.HIGHWAY_DRIVING.value,
    },
    {
        "name": "Parking Master",
        "description": "Mastered parking maneuvers",
        "image_url": "/badges/parking-master.svg",
        "category": "MANEUVERING",
        "criteria": BadgeCriteria.MASTER_PARKING.value,
    },
    {
        "name": "Eco-Driving Expert",
        "description": "Mastered every eco-driving competency",
        "image_url": "/badges/eco-driver.svg",
        "category": "SPECIAL",
        "criteria": BadgeCriteria.MASTER_ECO_DRIVING.value,
    },
    {
        "name": "Active Mentor",
        "description": "Validated 10 driving sessions as a guide",
        "image_url": "/badges/active-mentor.svg",
        "category": "SOCIAL",
        "criteria": BadgeCriteria.VALIDATE_10_SESSIONS.value,
    },
    {
        "name": "Roadbook Complete",
        "description": "Completed a roadbook",
        "image_url": "/badges/roadbook-complete.svg",
        "category": "SPECIAL",
        "criteria": BadgeCriteria.COMPLETE_ROADBOOK.value,
    },
]


async def seed_badges(db: AsyncSession) -> int:
    """Upsert every seed badge by name. Returns number of badges seeded."""
    existing = {b.name: b for b in (await db.execute(select(Badge))).scalars()}

    seeded = 0
    for badge_data in BADGE_SEED_DATA:
        badge = existing.get(badge_data["name"])
        if badge is None:
            db.add(Badge(**badge_data))
        else:
            for field, value in badge_data.items():
                setattr(badge, field, value)
        seeded += 1

    await db.commit()
    logger.info("Seeded %d badge definitions", seeded)
    return seeded
