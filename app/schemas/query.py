"""Schemas for the query endpoint."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.config import MAX_QUERY_LENGTH


class QueryRequest(BaseModel):
    """Request body for POST /query and the MCP resolve_query tool."""

    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., min_length=1, max_length=MAX_QUERY_LENGTH, description="Natural-language question.")
    domain: str | None = Field(None, description="Domain hint for the assistant persona, e.g. healthcare.")
    use_cache: bool = Field(True, alias="useCache", description="Serve a verified cached answer when one exists.")

    @field_validator("query")
    @classmethod
    def _strip_query(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Query cannot be empty")
        return value


class QueryResponse(BaseModel):
    """Response for POST /query."""

    model_config = ConfigDict(populate_by_name=True)

    answer_text: str = Field(..., alias="answerText", description="Final answer (cached or freshly generated).")
    confidence_score: float = Field(..., alias="confidenceScore", description="Heuristic confidence in [0, 1].")
    cached: bool = Field(..., description="True when served from the verified cache.")
    reprompted: bool = Field(False, description="True when a review pass replaced the first answer.")
