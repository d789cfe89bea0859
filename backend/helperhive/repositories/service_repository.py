# backend/helperhive/repositories/service_repository.py
"""Service catalog queries."""

from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..models.service import Service
from .base_repository import BaseRepository


class ServiceRepository(BaseRepository[Service]):
    def __init__(self, db: Session):
        super().__init__(db, Service)

    def get_active(self, service_id: str) -> Optional[Service]:
        return self.find_one_by(id=service_id, is_active=True)

    def search(
        self,
        *,
        category: Optional[str] = None,
        province: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Service], int]:
        query = self.db.query(Service).filter(Service.is_active.is_(True))
        if category:
            query = query.filter(Service.category == category)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(func.lower(Service.name).like(pattern), func.lower(Service.description).like(pattern))
            )
        query = query.order_by(Service.name.asc())
        if province:
            # Province lists are JSON arrays; filter after load to stay dialect-neutral
            matches = [s for s in query.all() if s.serves_province(province)]
            return matches[skip : skip + limit], len(matches)
        total = query.count()
        return query.offset(skip).limit(limit).all(), total

    def list_active(self, category: Optional[str] = None) -> List[Service]:
        query = self.db.query(Service).filter(Service.is_active.is_(True))
        if category:
            query = query.filter(Service.category == category)
        return query.order_by(Service.name.asc()).all()

    def count_active_by_category(self) -> Dict[str, int]:
        rows = (
            self.db.query(Service.category, func.count(Service.id))
            .filter(Service.is_active.is_(True))
            .group_by(Service.category)
            .all()
        )
        return {category: count for category, count in rows}

    def get_many(self, service_ids: List[str]) -> List[Service]:
        if not service_ids:
            return []
        return self.db.query(Service).filter(Service.id.in_(service_ids)).all()
