from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Literal, Optional


class AnalyzeRequest(BaseModel):
    owner: Optional[str] = None
    repo: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class PipelineProgressEvent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: Literal["progress"] = "progress"
    step: int
    total_steps: int
    step_id: str
    label: str
    status: Literal["active", "complete", "error"]
    details: Optional[str] = None
    timestamp: int
