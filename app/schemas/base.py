from pydantic import BaseModel, ConfigDict


class IDModel(BaseModel):
    id: int
    model_config = ConfigDict(from_attributes=True)
