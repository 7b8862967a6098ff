"""
Embedding Domain Model
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EmbeddingRequest(BaseModel):
    """OpenAI Embeddings request body"""

    model_config = ConfigDict(extra="allow")

    model: str = Field(..., min_length=1)
    # Single text or ordered list of texts
    input: Union[str, list[str]]
    dimensions: Optional[int] = Field(None, ge=1)
    encoding_format: Optional[str] = None
    user: Optional[str] = None

    def inputs(self) -> list[str]:
        if isinstance(self.input, str):
            return [self.input]
        return list(self.input)
