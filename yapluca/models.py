# yapluca/models.py
from sqlalchemy import Column, String, DateTime, JSON, Text
import datetime
import uuid
from yapluca.db import Base

def gen_uid():
    return uuid.uuid4().hex

def utcnow():
    return datetime.datetime.now(datetime.timezone.utc)

class StoredItem(Base):
    """One entry of the device key/value store. Values are JSON text."""
    __tablename__ = "local_storage"
    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

class IdentityAccount(Base):
    __tablename__ = "identity_accounts"
    uid = Column(String, primary_key=True, default=gen_uid)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    display_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    last_sign_in_at = Column(DateTime, nullable=True)

class Document(Base):
    __tablename__ = "documents"
    collection = Column(String, primary_key=True)
    doc_id = Column(String, primary_key=True)
    data = Column(JSON, default={})
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
