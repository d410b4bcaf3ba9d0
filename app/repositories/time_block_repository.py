"""Time block repository - recurring and punctual closures"""
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.time_block import RecurringTimeBlock, PunctualTimeBlock


class TimeBlockRepository:
    """Repository for time block database operations"""

    @staticmethod
    def recurring_for(
            db: Session,
            establishment_id: UUID,
            professional_id: Optional[UUID],
            weekday: int
    ) -> List[RecurringTimeBlock]:
        """Active weekly blocks for a weekday, establishment-wide or for the professional"""
        return db.query(RecurringTimeBlock).filter(
            RecurringTimeBlock.establishment_id == establishment_id,
            RecurringTimeBlock.weekday == weekday,
            RecurringTimeBlock.active == True,
            or_(
                RecurringTimeBlock.professional_id.is_(None),
                RecurringTimeBlock.professional_id == professional_id
            )
        ).all()

    @staticmethod
    def punctual_for(
            db: Session,
            establishment_id: UUID,
            professional_id: Optional[UUID],
            day: date
    ) -> List[PunctualTimeBlock]:
        """One-off blocks overlapping the given day"""
        day_start = datetime.combine(day, time.min)
        day_end = day_start + timedelta(days=1)

        return db.query(PunctualTimeBlock).filter(
            PunctualTimeBlock.establishment_id == establishment_id,
            PunctualTimeBlock.start_at < day_end,
            PunctualTimeBlock.end_at > day_start,
            or_(
                PunctualTimeBlock.professional_id.is_(None),
                PunctualTimeBlock.professional_id == professional_id
            )
        ).all()
