from sqlalchemy import Column, Integer, String, DateTime, Text
from datetime import datetime
from patronclean.database import Base


class ActionLog(Base):
    __tablename__ = "action_logs"

    id = Column(Integer, primary_key=True, index=True)
    table_id = Column(String, nullable=True, index=True)   # cached table the change applies to

    # Action types: Validation | Data Cleanup | Data Transformation
    action_type = Column(String, nullable=False)
    # Target: Mobile Validation | Email Validation | Aadhaar Validation |
    #         Date Validation | Date Validation (Manual) | Duplicate Removal | ...
    target = Column(String, nullable=False)

    cell_reference = Column(String, nullable=True)         # e.g. "Patrons!G12"
    details = Column(Text, nullable=False)

    timestamp = Column(DateTime, default=datetime.utcnow)
