from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    false,
    text,
    true,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata

CADENCES = ('nth_weekday_of_month', 'weekly', 'daily', 'custom')


class Managers(Base):
    __tablename__ = 'managers'

    full_name = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    position = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())

    templates = relationship('RecurringTemplates', back_populates='manager')
    slots = relationship('ReceptionSlots', back_populates='manager')


class RecurringTemplates(Base):
    __tablename__ = 'recurring_templates'

    manager_id = Column(ForeignKey('managers.id', ondelete='CASCADE'), nullable=False, index=True)
    cadence = Column(Enum(*CADENCES, name='recurrence_cadence'), nullable=False)
    start_time = Column(Text, nullable=False)  # "HH:MM"
    end_time = Column(Text, nullable=False)  # "HH:MM"
    slot_duration_minutes = Column(Integer, nullable=False, default=10, server_default=text('10'))
    months_ahead = Column(Integer, nullable=False, default=3, server_default=text('3'))
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    id = Column(Integer, primary_key=True)
    weekday = Column(Integer)  # 0 = Monday
    week_number = Column(Integer)  # 1..5, only for nth_weekday_of_month
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    manager = relationship('Managers', back_populates='templates')
    slots = relationship('ReceptionSlots', back_populates='template')


class ReceptionSlots(Base):
    __tablename__ = 'reception_slots'
    __table_args__ = (
        UniqueConstraint('manager_id', 'date', 'start_time', name='uq_reception_slots_manager_start'),
    )

    manager_id = Column(ForeignKey('managers.id', ondelete='CASCADE'), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True, server_default=true())
    is_booked = Column(Boolean, nullable=False, default=False, server_default=false())
    id = Column(Integer, primary_key=True)
    template_id = Column(ForeignKey('recurring_templates.id', ondelete='SET NULL'))
    booked_by = Column(Text)
    booked_email = Column(Text)
    notes = Column(Text)
    booked_at = Column(DateTime)

    manager = relationship('Managers', back_populates='slots')
    template = relationship('RecurringTemplates', back_populates='slots')
