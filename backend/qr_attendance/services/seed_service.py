"""Database seeding service for demo data."""
from flask import current_app

from qr_attendance.models import Participant, ParticipantRole
from qr_attendance.services.store_service import StoreService

DEMO_PARTICIPANTS = [
    ('CM001', 'Aisha Rahman', ParticipantRole.CORE_MEMBER),
    ('CM002', 'Daniel Okafor', ParticipantRole.CORE_MEMBER),
    ('CM003', 'Mei Lin', ParticipantRole.CORE_MEMBER),
    ('VO001', 'Lucas Moreau', ParticipantRole.VOLUNTEER),
    ('VO002', 'Priya Nair', ParticipantRole.VOLUNTEER),
    ('VO003', 'Omar Haddad', ParticipantRole.VOLUNTEER),
    ('AD001', 'Sofia Rossi', ParticipantRole.ADMIN),
]


class SeedService:
    """Service to seed the database with demo participants."""

    @staticmethod
    def seed_participants() -> int:
        """Add the demo participants that are not enrolled yet."""
        created = 0
        for participant_id, name, role in DEMO_PARTICIPANTS:
            if StoreService.get_participant(participant_id):
                continue
            StoreService.add_participant(Participant(id=participant_id, name=name, role=role))
            created += 1

        current_app.logger.info('Seeded %d participants', created)
        return created
