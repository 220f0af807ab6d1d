from datetime import datetime
from pydantic import BaseModel


class DocumentRead(BaseModel):
    id: int
    application_id: int
    file_name: str
    file_type: str
    file_size: int
    file_path: str
    document_type: str
    uploaded_at: datetime

    class Config:
        from_attributes = True
