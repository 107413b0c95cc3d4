# workorders/schemas/actor_schemas.py
from pydantic import BaseModel


class Actor(BaseModel):
    id: str
    name: str
    email: str = ""

    class Config:
        frozen = True


SYSTEM_ACTOR = Actor(id="system", name="System", email="")
