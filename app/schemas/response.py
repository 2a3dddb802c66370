from pydantic import BaseModel
from typing import Optional, Any


class ApiResponse(BaseModel):
    success: bool
    code: int = 200
    message: str
    data: Optional[Any] = None
