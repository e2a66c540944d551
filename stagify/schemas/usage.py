from pydantic import BaseModel, ConfigDict


class QuotaStatusResponse(BaseModel):
    """Quota position of one metered resource in the current period"""

    model_config = ConfigDict(from_attributes=True)

    resource_type: str
    period: str
    used: int
    limit: int
    remaining: int
