from sqlalchemy import Column, String, Text

from fitmate.models.base import Base


class ContactRequest(Base):
    """A message left through the public contact form."""
    __tablename__ = "contact_requests"

    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone_number = Column(String, nullable=True)
    subject = Column(String, nullable=False)
    message = Column(Text, nullable=False)
