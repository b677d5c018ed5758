from pydantic import BaseModel


class UploadedDocument(BaseModel):
    """One uploaded file as received by the API, before extraction"""
    filename: str
    mime_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)
