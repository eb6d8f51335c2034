from pydantic import BaseModel, Field


class SuggestTagsIn(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=5000)


class SuggestTagsOut(BaseModel):
    tags: list[str]


class GenerateImageIn(BaseModel):
    title: str = Field(min_length=1, max_length=100)


class GenerateImageOut(BaseModel):
    image_url: str
