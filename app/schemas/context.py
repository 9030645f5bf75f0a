from typing import List, Union
from pydantic import BaseModel


class UserContext(BaseModel):
    user_id: str
    role: Union[str, List[str]]
