from pydantic import BaseModel, ConfigDict


class SideEffectResponse(BaseModel):
    name: str
    ok: bool
    error: str | None = None

    model_config = ConfigDict(from_attributes=True)
