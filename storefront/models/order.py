from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime

from storefront.models.base import Base, new_id

ORDER_STATUSES = ("pending", "processing", "settled", "expired", "invalid")
TERMINAL_STATUSES = frozenset({"settled", "expired", "invalid"})


class BtcpayOrder(Base):
    """Bitcoin checkout order, keyed to its BTCPay invoice for webhook updates."""

    __tablename__ = "btcpay_orders"

    id = Column(String(64), primary_key=True, default=new_id)
    product_id = Column(String(64), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    size = Column(String(50))
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(10), default="USD", nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, processing, settled, expired, invalid
    btcpay_invoice_id = Column(String(255), index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    product = relationship("Product")
