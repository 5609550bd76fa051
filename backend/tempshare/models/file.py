# tempshare/models/file.py
from sqlalchemy import Column, Integer, String, ForeignKey, BigInteger
from sqlalchemy.orm import relationship
from .base import Base, UTCDateTime, utcnow

class FileRecord(Base):
    __tablename__ = "files"

    id = Column(String(36), primary_key=True)  # публичный токен ссылки
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    filename = Column(String, nullable=False)
    content_type = Column(String, nullable=True)
    size = Column(BigInteger, nullable=False)
    object_key = Column(String, unique=True, nullable=False)  # ключ в объектном хранилище
    expires_at = Column(UTCDateTime, index=True, nullable=False)
    download_count = Column(Integer, nullable=False, default=0)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    owner = relationship("User", back_populates="files")

    def __repr__(self):
        return f"<FileRecord(id={self.id}, object_key={self.object_key})>"
