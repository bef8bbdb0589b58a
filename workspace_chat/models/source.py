"""
Source citation schema.

Dependencies: pydantic
System role: Citation attached to assistant messages and sources events
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Source(BaseModel):
    """
    Citation for a chunk that grounded an answer.

    Attributes:
        document_name: Source document display name ("[WEB] ..." for web results)
        page_number: 1-based page, 0 when the source has no pages
        chunk_text: Preview of the chunk text
        score: Similarity (or web relevance) score
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    document_name: str
    page_number: int = 0
    chunk_text: str = ""
    score: float = Field(default=0.0)
