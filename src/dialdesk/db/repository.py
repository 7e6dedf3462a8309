"""SQLite repository for leads, campaigns and call logs."""

import logging
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Any, Iterable, Optional
from functools import lru_cache

from sqlalchemy import (
    create_engine,
    func,
    or_,
    Column,
    String,
    Integer,
    Float,
    Date,
    DateTime,
    Text,
    Index,
)
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from ..config import settings
from ..models import Lead, Campaign, CallLog
from ..models.enums import LeadStatus, CallOutcome
from ..outcomes import map_outcome_to_status

logger = logging.getLogger(__name__)

Base = declarative_base()


# =============================================================================
# SQLAlchemy Models (Database Tables)
# =============================================================================

class LeadRecord(Base):
    """SQLAlchemy model for leads table."""

    __tablename__ = "leads"

    id = Column(String(36), primary_key=True)
    place_id = Column(String(255), unique=True, index=True)

    # Business snapshot
    business_name = Column(String(255), index=True)
    phone_number = Column(String(50), index=True)
    email = Column(String(255))
    address = Column(Text)
    website = Column(String(500))
    rating = Column(Float)
    total_ratings = Column(Integer)
    category = Column(String(100))
    business_status = Column(String(50))
    google_maps_url = Column(String(500))

    # Pipeline
    source_query = Column(String(255))
    campaign_id = Column(String(36), index=True)
    status = Column(String(30), default="new", index=True)
    last_called_at = Column(DateTime, index=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Full JSON blob for complete model
    full_data = Column(Text)

    __table_args__ = (
        Index("ix_leads_campaign_status", "campaign_id", "status"),
    )


class CampaignRecord(Base):
    """SQLAlchemy model for campaigns table."""

    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    daily_dial_target = Column(Integer, default=100)
    start_date = Column(Date)
    end_date = Column(Date)
    status = Column(String(20), default="active", index=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    full_data = Column(Text)


class CallLogRecord(Base):
    """SQLAlchemy model for call_logs table."""

    __tablename__ = "call_logs"

    id = Column(String(36), primary_key=True)
    lead_id = Column(String(36), nullable=False, index=True)
    campaign_id = Column(String(36), index=True)
    call_outcome = Column(String(30), nullable=False, index=True)
    notes = Column(Text)
    duration_seconds = Column(Integer)
    scheduled_callback = Column(DateTime, index=True)
    called_at = Column(DateTime, default=datetime.utcnow, index=True)

    full_data = Column(Text)

    __table_args__ = (
        Index("ix_call_logs_campaign_outcome", "campaign_id", "call_outcome"),
    )


def _start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min)


# =============================================================================
# Repository Class
# =============================================================================

class Repository:
    """Repository for database operations."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.DATABASE_URL

        # Ensure data directory exists
        if self.database_url.startswith("sqlite:///"):
            db_path = Path(self.database_url.replace("sqlite:///", ""))
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(
            self.database_url,
            echo=settings.DEBUG,
            connect_args={"check_same_thread": False} if "sqlite" in self.database_url else {},
        )
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def init_db(self) -> None:
        """Create all tables."""
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    # =========================================================================
    # Lead Operations
    # =========================================================================

    @staticmethod
    def _write_lead(record: LeadRecord, lead: Lead) -> None:
        """Map Lead to LeadRecord."""
        record.place_id = lead.place_id
        record.business_name = lead.business_name
        record.phone_number = lead.phone_number
        record.email = lead.email
        record.address = lead.address
        record.website = lead.website
        record.rating = lead.rating
        record.total_ratings = lead.total_ratings
        record.category = lead.category
        record.business_status = lead.business_status
        record.google_maps_url = lead.google_maps_url
        record.source_query = lead.source_query
        record.campaign_id = lead.campaign_id
        record.status = lead.status
        record.last_called_at = lead.last_called_at
        record.created_at = lead.created_at
        record.updated_at = lead.updated_at
        record.full_data = lead.model_dump_json(exclude={"never_dialled"})

    @staticmethod
    def _read_lead(record: Optional[LeadRecord]) -> Optional[Lead]:
        if record and record.full_data:
            return Lead.model_validate_json(record.full_data)
        return None

    def save_lead(self, lead: Lead) -> Lead:
        """Save or update a lead."""
        with self.get_session() as session:
            record = session.query(LeadRecord).filter_by(id=lead.id).first()

            if record is None:
                record = LeadRecord(id=lead.id)
                session.add(record)

            self._write_lead(record, lead)
            session.commit()
            return lead

    def get_lead(self, lead_id: str) -> Optional[Lead]:
        """Get a lead by ID."""
        with self.get_session() as session:
            return self._read_lead(session.query(LeadRecord).filter_by(id=lead_id).first())

    def get_lead_by_place_id(self, place_id: str) -> Optional[Lead]:
        """Get a lead by its places provider ID."""
        with self.get_session() as session:
            return self._read_lead(session.query(LeadRecord).filter_by(place_id=place_id).first())

    def find_leads_by_phone(self, phone_number: str) -> list[Lead]:
        """All leads whose stored phone number matches exactly."""
        with self.get_session() as session:
            records = session.query(LeadRecord).filter_by(phone_number=phone_number).all()
            return [lead for lead in map(self._read_lead, records) if lead]

    def list_leads(
        self,
        status: Optional[LeadStatus] = None,
        campaign_id: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[Lead], int]:
        """
        List leads with optional filters, newest first.

        Returns:
            Tuple of (page of leads, total matching the filters)
        """
        with self.get_session() as session:
            query = session.query(LeadRecord)

            if status:
                query = query.filter(LeadRecord.status == LeadStatus(status).value)
            if campaign_id:
                query = query.filter(LeadRecord.campaign_id == campaign_id)
            if search:
                pattern = f"%{search}%"
                query = query.filter(or_(
                    LeadRecord.business_name.ilike(pattern),
                    LeadRecord.phone_number.ilike(pattern),
                ))

            total = query.count()

            query = query.order_by(LeadRecord.created_at.desc())
            query = query.offset(offset).limit(limit)

            leads = [lead for lead in map(self._read_lead, query.all()) if lead]
            return leads, total

    def update_lead(self, lead_id: str, updates: dict[str, Any]) -> Optional[Lead]:
        """
        Merge field updates into a stored lead.

        Returns:
            The updated lead, or None if no lead has this ID
        """
        with self.get_session() as session:
            record = session.query(LeadRecord).filter_by(id=lead_id).first()
            current = self._read_lead(record)
            if current is None:
                return None

            data = current.model_dump(exclude={"never_dialled"})
            data.update(updates)
            data["id"] = current.id
            data["created_at"] = current.created_at
            data["updated_at"] = datetime.utcnow()
            lead = Lead.model_validate(data)

            self._write_lead(record, lead)
            session.commit()
            return lead

    def upsert_leads(self, leads: Iterable[Lead]) -> list[Lead]:
        """
        Insert leads, updating any that already exist for the same place_id.

        An update refreshes the scraped fields but keeps the stored lead's
        id, pipeline status, notes, last_called_at and created_at.
        """
        saved = []
        with self.get_session() as session:
            for lead in leads:
                record = None
                if lead.place_id:
                    record = session.query(LeadRecord).filter_by(place_id=lead.place_id).first()

                existing = self._read_lead(record)
                if existing is not None:
                    lead = lead.model_copy(update={
                        "id": existing.id,
                        "status": existing.status,
                        "notes": existing.notes,
                        "email": lead.email or existing.email,
                        "campaign_id": lead.campaign_id or existing.campaign_id,
                        "last_called_at": existing.last_called_at,
                        "created_at": existing.created_at,
                        "updated_at": datetime.utcnow(),
                    })
                else:
                    record = LeadRecord(id=lead.id)
                    session.add(record)

                self._write_lead(record, lead)
                # Flush so a repeated place_id later in the batch finds this row
                session.flush()
                saved.append(lead)

            session.commit()
        logger.info("Upserted %d leads", len(saved))
        return saved

    def delete_lead(self, lead_id: str) -> bool:
        """Delete a lead and its call logs."""
        with self.get_session() as session:
            record = session.query(LeadRecord).filter_by(id=lead_id).first()
            if record:
                session.query(CallLogRecord).filter_by(lead_id=lead_id).delete()
                session.delete(record)
                session.commit()
                return True
            return False

    def get_lead_stats(self, campaign_id: Optional[str] = None) -> dict:
        """Lead counts for every pipeline status, plus the total."""
        with self.get_session() as session:
            query = session.query(LeadRecord.status, func.count(LeadRecord.id))
            if campaign_id:
                query = query.filter(LeadRecord.campaign_id == campaign_id)
            counts = dict(query.group_by(LeadRecord.status).all())

        stats = {status.value: counts.get(status.value, 0) for status in LeadStatus}
        stats["total"] = sum(counts.values())
        return stats

    # =========================================================================
    # Campaign Operations
    # =========================================================================

    def save_campaign(self, campaign: Campaign) -> Campaign:
        """Save or update a campaign."""
        with self.get_session() as session:
            record = session.query(CampaignRecord).filter_by(id=campaign.id).first()

            if record is None:
                record = CampaignRecord(id=campaign.id)
                session.add(record)

            record.name = campaign.name
            record.description = campaign.description
            record.daily_dial_target = campaign.daily_dial_target
            record.start_date = campaign.start_date
            record.end_date = campaign.end_date
            record.status = campaign.status
            record.created_at = campaign.created_at
            record.updated_at = campaign.updated_at
            record.full_data = campaign.model_dump_json()

            session.commit()
            return campaign

    def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        """Get a campaign by ID."""
        with self.get_session() as session:
            record = session.query(CampaignRecord).filter_by(id=campaign_id).first()
            if record and record.full_data:
                return Campaign.model_validate_json(record.full_data)
            return None

    def list_campaigns(self) -> list[Campaign]:
        """All campaigns, newest first."""
        with self.get_session() as session:
            records = session.query(CampaignRecord).order_by(CampaignRecord.created_at.desc()).all()
            return [Campaign.model_validate_json(r.full_data) for r in records if r.full_data]

    def update_campaign(self, campaign_id: str, updates: dict[str, Any]) -> Optional[Campaign]:
        """Merge field updates into a stored campaign."""
        current = self.get_campaign(campaign_id)
        if current is None:
            return None

        data = current.model_dump()
        data.update(updates)
        data["id"] = current.id
        data["created_at"] = current.created_at
        data["updated_at"] = datetime.utcnow()
        return self.save_campaign(Campaign.model_validate(data))

    def delete_campaign(self, campaign_id: str) -> bool:
        """Delete a campaign and detach its leads."""
        with self.get_session() as session:
            record = session.query(CampaignRecord).filter_by(id=campaign_id).first()
            if record is None:
                return False

            for lead_record in session.query(LeadRecord).filter_by(campaign_id=campaign_id).all():
                lead = self._read_lead(lead_record)
                if lead:
                    lead.campaign_id = None
                    self._write_lead(lead_record, lead)

            session.delete(record)
            session.commit()
            return True

    def get_campaign_stats(self, campaign_id: str, now: Optional[datetime] = None) -> dict:
        """Lead count and today's call count for a campaign."""
        since = _start_of_day(now or datetime.utcnow())
        with self.get_session() as session:
            total_leads = session.query(LeadRecord).filter_by(campaign_id=campaign_id).count()
            todays_calls = session.query(CallLogRecord).filter(
                CallLogRecord.campaign_id == campaign_id,
                CallLogRecord.called_at >= since,
            ).count()
        return {"total_leads": total_leads, "todays_calls": todays_calls}

    # =========================================================================
    # Call Log Operations
    # =========================================================================

    @staticmethod
    def _read_call_logs(session: Session, records: list[CallLogRecord]) -> list[CallLog]:
        """Rebuild call logs, filling in the lead's name, phone and address."""
        logs = [CallLog.model_validate_json(r.full_data) for r in records if r.full_data]
        lead_ids = {log.lead_id for log in logs}
        if not lead_ids:
            return logs

        leads = {
            r.id: r
            for r in session.query(LeadRecord).filter(LeadRecord.id.in_(list(lead_ids))).all()
        }
        for log in logs:
            lead_record = leads.get(log.lead_id)
            if lead_record is not None:
                log.business_name = lead_record.business_name
                log.phone_number = lead_record.phone_number
                log.address = lead_record.address
        return logs

    def list_call_logs(
        self,
        lead_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
        day: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[CallLog], int]:
        """
        List call logs with optional filters, most recent first.

        Returns:
            Tuple of (page of call logs, total matching the filters)
        """
        with self.get_session() as session:
            query = session.query(CallLogRecord)

            if lead_id:
                query = query.filter(CallLogRecord.lead_id == lead_id)
            if campaign_id:
                query = query.filter(CallLogRecord.campaign_id == campaign_id)
            if day:
                start = datetime.combine(day, time.min)
                query = query.filter(
                    CallLogRecord.called_at >= start,
                    CallLogRecord.called_at < start + timedelta(days=1),
                )

            total = query.count()
            query = query.order_by(CallLogRecord.called_at.desc()).offset(offset).limit(limit)
            return self._read_call_logs(session, query.all()), total

    def log_call(
        self,
        call_log: CallLog,
        now: Optional[datetime] = None,
    ) -> tuple[CallLog, Optional[Lead]]:
        """
        Record a call and apply its effects to the lead.

        The lead's last_called_at is stamped for every outcome; its status
        changes only when the outcome maps to a new stage.

        Returns:
            Tuple of (saved call log, updated lead or None if the lead is unknown)
        """
        now = now or datetime.utcnow()
        new_status = map_outcome_to_status(call_log.call_outcome)

        with self.get_session() as session:
            lead_record = session.query(LeadRecord).filter_by(id=call_log.lead_id).first()
            lead = self._read_lead(lead_record)

            updates: dict[str, Any] = {"called_at": now}
            if lead is not None:
                updates.update({
                    "campaign_id": call_log.campaign_id or lead.campaign_id,
                    "business_name": lead.business_name,
                    "phone_number": lead.phone_number,
                    "address": lead.address,
                })
            call_log = call_log.model_copy(update=updates)

            record = CallLogRecord(
                id=call_log.id,
                lead_id=call_log.lead_id,
                campaign_id=call_log.campaign_id,
                call_outcome=CallOutcome(call_log.call_outcome).value,
                notes=call_log.notes,
                duration_seconds=call_log.duration_seconds,
                scheduled_callback=call_log.scheduled_callback,
                called_at=call_log.called_at,
                full_data=call_log.model_dump_json(),
            )
            session.add(record)

            if lead is not None:
                # Always: the lead has now been dialled
                lead.mark_called(now)

                # Only for stage-changing outcomes
                lead.apply_status(new_status, at=now)

                self._write_lead(lead_record, lead)
            session.commit()

        if lead is None:
            logger.warning("Logged call for unknown lead %s", call_log.lead_id)
        else:
            logger.info(
                "Logged %s call for lead %s (status %s)",
                call_log.call_outcome,
                lead.id,
                new_status.value if new_status else "unchanged",
            )
        return call_log, lead

    def get_call_stats(self, campaign_id: Optional[str] = None) -> dict:
        """
        Call statistics for the current set of leads.

        total_calls counts unique leads dialled; outcomes counts raw calls.
        """
        with self.get_session() as session:
            unique_query = session.query(func.count(func.distinct(CallLogRecord.lead_id)))
            outcome_query = session.query(CallLogRecord.call_outcome, func.count(CallLogRecord.id))
            if campaign_id:
                unique_query = unique_query.filter(CallLogRecord.campaign_id == campaign_id)
                outcome_query = outcome_query.filter(CallLogRecord.campaign_id == campaign_id)

            unique_leads = unique_query.scalar() or 0
            counts = dict(outcome_query.group_by(CallLogRecord.call_outcome).all())

        return {
            "total_calls": unique_leads,
            "outcomes": {outcome.value: counts.get(outcome.value, 0) for outcome in CallOutcome},
            "date": None,
        }

    def get_due_callbacks(
        self,
        campaign_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> list[CallLog]:
        """Call logs whose scheduled callback time has arrived, earliest first."""
        now = now or datetime.utcnow()
        with self.get_session() as session:
            query = session.query(CallLogRecord).filter(
                CallLogRecord.scheduled_callback.isnot(None),
                CallLogRecord.scheduled_callback <= now,
            )
            if campaign_id:
                query = query.filter(CallLogRecord.campaign_id == campaign_id)
            query = query.order_by(CallLogRecord.scheduled_callback.asc())
            return self._read_call_logs(session, query.all())

    def delete_call_log(self, call_log_id: str) -> bool:
        """Delete a call log."""
        with self.get_session() as session:
            record = session.query(CallLogRecord).filter_by(id=call_log_id).first()
            if record:
                session.delete(record)
                session.commit()
                return True
            return False

    # =========================================================================
    # Maintenance
    # =========================================================================

    def _latest_call_times(self, session: Session) -> dict[str, datetime]:
        rows = session.query(
            CallLogRecord.lead_id,
            func.max(CallLogRecord.called_at),
        ).group_by(CallLogRecord.lead_id).all()
        return dict(rows)

    def backfill_last_called_at(self) -> dict:
        """
        Stamp last_called_at from call history on leads that lack it.

        Returns:
            Dict with updated and skipped counts
        """
        updated = 0
        skipped = 0
        with self.get_session() as session:
            for lead_id, called_at in self._latest_call_times(session).items():
                record = session.query(LeadRecord).filter_by(id=lead_id).first()
                lead = self._read_lead(record)
                if lead is None:
                    logger.warning("Call logs reference missing lead %s", lead_id)
                    continue
                if lead.last_called_at is not None:
                    skipped += 1
                    continue

                lead.last_called_at = called_at
                self._write_lead(record, lead)
                updated += 1

            session.commit()

        logger.info("Backfilled last_called_at: %d updated, %d skipped", updated, skipped)
        return {"updated": updated, "skipped": skipped}

    def backfill_lead_status(self) -> dict:
        """
        Move dialled leads still marked new to contacted.

        Returns:
            Dict with updated count
        """
        updated = 0
        with self.get_session() as session:
            records = session.query(LeadRecord).filter(
                LeadRecord.last_called_at.isnot(None),
                LeadRecord.status == LeadStatus.NEW.value,
            ).all()
            for record in records:
                lead = self._read_lead(record)
                if lead is None:
                    continue
                lead.apply_status(LeadStatus.CONTACTED)
                self._write_lead(record, lead)
                updated += 1

            session.commit()

        logger.info("Backfilled status: %d leads moved to contacted", updated)
        return {"updated": updated}

    def update_status_by_phone(
        self,
        phone_number: str,
        status: LeadStatus,
        now: Optional[datetime] = None,
    ) -> list[tuple[Lead, Optional[CallLog]]]:
        """
        Manually set the status of every lead with this phone number.

        Each lead is also stamped as called. When the status names a call
        outcome too, a call log recording the manual change is added.

        Returns:
            List of (updated lead, call log or None) pairs
        """
        now = now or datetime.utcnow()
        status = LeadStatus(status)
        try:
            outcome: Optional[CallOutcome] = CallOutcome(status.value)
        except ValueError:
            outcome = None

        results = []
        with self.get_session() as session:
            for record in session.query(LeadRecord).filter_by(phone_number=phone_number).all():
                lead = self._read_lead(record)
                if lead is None:
                    continue

                lead.mark_called(now)
                lead.apply_status(status, at=now)
                self._write_lead(record, lead)

                call_log = None
                if outcome is not None:
                    call_log = CallLog(
                        lead_id=lead.id,
                        campaign_id=lead.campaign_id,
                        call_outcome=outcome,
                        notes=f"Status manually updated to {status.value} via script",
                        called_at=now,
                    )
                    session.add(CallLogRecord(
                        id=call_log.id,
                        lead_id=call_log.lead_id,
                        campaign_id=call_log.campaign_id,
                        call_outcome=outcome.value,
                        notes=call_log.notes,
                        called_at=now,
                        full_data=call_log.model_dump_json(),
                    ))

                results.append((lead, call_log))

            session.commit()

        logger.info("Set status %s on %d leads with phone %s", status.value, len(results), phone_number)
        return results

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> dict:
        """Get database statistics."""
        with self.get_session() as session:
            return {
                "leads": {
                    "total": session.query(LeadRecord).count(),
                    "new": session.query(LeadRecord).filter_by(status="new").count(),
                    "never_dialled": session.query(LeadRecord).filter(
                        LeadRecord.last_called_at.is_(None)
                    ).count(),
                    "closed_won": session.query(LeadRecord).filter_by(status="closed_won").count(),
                },
                "campaigns": {
                    "total": session.query(CampaignRecord).count(),
                    "active": session.query(CampaignRecord).filter_by(status="active").count(),
                },
                "call_logs": {
                    "total": session.query(CallLogRecord).count(),
                    "leads_dialled": session.query(
                        func.count(func.distinct(CallLogRecord.lead_id))
                    ).scalar() or 0,
                },
            }


@lru_cache
def get_repository() -> Repository:
    """Get cached repository instance."""
    repo = Repository()
    repo.init_db()
    return repo
