# scheduling/models/provider.py
"""
Provider and catalog models.

ServiceProvider is the owner of availability and bookings. ProviderService is
the catalog entry a booking points at; it is the source of truth for the
duration and price the scheduling engine uses.
"""
from sqlalchemy import Column, String, Numeric, Integer, ForeignKey, Boolean, DateTime, Text, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from scheduling.models.base import Base


class ServiceProvider(Base):
    __tablename__ = "service_providers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_name = Column(String(200), nullable=False)
    business_address = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    services = relationship("ProviderService", back_populates="provider")

    def __repr__(self):
        return f"<ServiceProvider(id={self.id}, business_name={self.business_name})>"

    def to_dict(self):
        return {
            "id": str(self.id),
            "business_name": self.business_name,
            "business_address": self.business_address,
            "is_active": self.is_active,
        }


class ProviderService(Base):
    """
    A service a provider offers, with optional provider-specific overrides of
    the base price and duration.
    """
    __tablename__ = "provider_services"
    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_provider_services_duration_positive"),
        CheckConstraint("base_price >= 0", name="ck_provider_services_price_non_negative"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    provider_id = Column(
        Uuid,
        ForeignKey("service_providers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Core service details
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # Pricing and duration, with provider overrides
    base_price = Column(Numeric(10, 2), nullable=False)
    price_override = Column(Numeric(10, 2), nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    duration_override = Column(Integer, nullable=True)

    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    provider = relationship("ServiceProvider", back_populates="services")

    def __repr__(self):
        return f"<ProviderService(id={self.id}, name={self.name}, provider_id={self.provider_id})>"

    @property
    def effective_price(self):
        return self.price_override if self.price_override is not None else self.base_price

    @property
    def effective_duration(self) -> int:
        return self.duration_override if self.duration_override else self.duration_minutes

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "provider_id": str(self.provider_id),
            "name": self.name,
            "description": self.description,
            "price": float(self.effective_price) if self.effective_price is not None else None,
            "duration_minutes": self.effective_duration,
            "is_active": self.is_active,
        }

    @property
    def formatted_duration(self) -> str:
        """Return human-readable duration string"""
        hours = self.effective_duration // 60
        minutes = self.effective_duration % 60

        if hours > 0 and minutes > 0:
            return f"{hours}h {minutes}m"
        elif hours > 0:
            return f"{hours}h"
        else:
            return f"{minutes}m"
