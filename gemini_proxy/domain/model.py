"""
Model Listing Domain Model
"""

from typing import Literal

from pydantic import BaseModel

# Creation timestamp reported for every Gemini model (Gemini exposes none)
MODEL_CREATED_AT = 1686935002
MODEL_OWNER = "gemini"


class ModelCard(BaseModel):
    id: str
    object: Literal["model"] = "model"
    owned_by: str = MODEL_OWNER
    created: int = MODEL_CREATED_AT


class ModelList(BaseModel):
    object: Literal["list"] = "list"
    data: list[ModelCard]
