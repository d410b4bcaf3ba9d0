"""Customer repository - Database operations for customers"""
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.customer import Customer


class CustomerRepository:
    """Repository for customer database operations"""

    @staticmethod
    def get_by_phone(db: Session, establishment_id: UUID, phone: str) -> Optional[Customer]:
        return db.query(Customer).filter(
            Customer.establishment_id == establishment_id,
            Customer.phone == phone
        ).first()

    @staticmethod
    def upsert(
            db: Session,
            establishment_id: UUID,
            name: str,
            phone: str,
            email: Optional[str] = None,
            user_id: Optional[UUID] = None
    ) -> Customer:
        """
        Find the establishment's customer by phone, refreshing contact data, or create one.

        The insert runs in a SAVEPOINT. If a concurrent booking committed the
        same phone first, the savepoint is rolled back and that row is reused.
        """
        customer = CustomerRepository.get_by_phone(db, establishment_id, phone)

        if customer is None:
            created = Customer(
                establishment_id=establishment_id,
                name=name,
                phone=phone,
                email=email,
                user_id=user_id,
            )
            try:
                with db.begin_nested():
                    db.add(created)
                return created
            except IntegrityError:
                customer = CustomerRepository.get_by_phone(db, establishment_id, phone)
                if customer is None:
                    raise

        customer.name = name
        if email:
            customer.email = email
        if user_id:
            customer.user_id = user_id

        db.flush()
        return customer
