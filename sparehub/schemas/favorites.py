from typing import Literal

from pydantic import BaseModel, Field


class ToggleFavoriteIn(BaseModel):
    user_id: str = Field(min_length=1, alias="userId")
    product_id: int = Field(gt=0, alias="productId")

    class Config:
        populate_by_name = True
        str_strip_whitespace = True
        coerce_numbers_to_str = True


class ToggleFavoriteOut(BaseModel):
    success: bool = True
    action: Literal["added", "removed"]
    message: str
