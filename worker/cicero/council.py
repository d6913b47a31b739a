"""Council member reference data and speaker attribution."""

import logging

from cicero import db
from cicero.schemas.meeting import CouncilMember
from cicero.schemas.summary import SpeakerOpinion

logger = logging.getLogger(__name__)

CITY_NAME = "Fort Collins"

# Fort Collins City Council as of January 2026
DEFAULT_ROSTER: list[dict] = [
    {"name": "Emily Francis", "role": "mayor", "district": None,
     "email": "efrancis@fortcollins.gov"},
    {"name": "Julie Pignataro", "role": "mayor_pro_tem", "district": 2,
     "email": "jpignataro@fortcollins.gov"},
    {"name": "Chris Conway", "role": "council_member", "district": 1,
     "email": "cconway@fortcollins.gov"},
    {"name": "Josh Fudge", "role": "council_member", "district": 3,
     "email": "jfudge@fortcollins.gov"},
    {"name": "Melanie Potyondy", "role": "council_member", "district": 4,
     "email": "mpotyondy@fortcollins.gov"},
    {"name": "Amy Hoeven", "role": "council_member", "district": 5,
     "email": "ahoeven@fortcollins.gov"},
]

ROLE_TITLES = {
    "mayor": "Mayor",
    "mayor_pro_tem": "Mayor Pro Tem",
    "council_member": "Council Member",
}


async def seed_council_members() -> int:
    """Insert the default roster into an empty table.

    Returns:
        Number of members inserted (0 if already seeded)
    """
    if await db.count_council_members() > 0:
        logger.info("Council members already seeded, skipping")
        return 0

    for member in DEFAULT_ROSTER:
        await db.insert_council_member(**member)

    logger.info(f"Seeded {len(DEFAULT_ROSTER)} council members")
    return len(DEFAULT_ROSTER)


async def list_active() -> list[CouncilMember]:
    return await db.list_active_council_members()


def format_roster(members: list[CouncilMember]) -> str:
    """Render members as prompt bullet lines, e.g.
    ``- Council Member Josh Fudge (District 3) - jfudge@fortcollins.gov``.
    """
    lines = []
    for member in members:
        seat = f"District {member.district}" if member.district is not None else "At-large"
        lines.append(f"- {ROLE_TITLES[member.role]} {member.name} ({seat}) - {member.email}")
    return "\n".join(lines)


def attach_speaker_ids(
    opinions: list[SpeakerOpinion], members: list[CouncilMember]
) -> list[SpeakerOpinion]:
    """Link speaker opinions to council members by name.

    ``speakerName`` usually carries a title ("Mayor Pro Tem Julie Pignataro"),
    so a member matches when their full name appears in it. Unmatched speakers
    (staff, public commenters) keep no ``speaker_id``.
    """
    for opinion in opinions:
        speaker = opinion.speaker_name.lower()
        for member in members:
            if member.name.lower() in speaker:
                opinion.speaker_id = member.id
                break
    return opinions
