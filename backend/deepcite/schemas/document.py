from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _DocumentBase(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    content: str = ""
    error: str | None = None


class PdfDocument(_DocumentBase):
    kind: Literal["pdf"] = "pdf"
    page_count: int | None = Field(None, alias="pageCount")
    scraper_used: str = Field("pymupdf", alias="scraperUsed")


class DocxDocument(_DocumentBase):
    kind: Literal["docx"] = "docx"
    scraper_used: str = Field("python-docx", alias="scraperUsed")


class LegacyDocDocument(_DocumentBase):
    """Legacy binary Word file: never parsed, always carries an error."""

    kind: Literal["doc"] = "doc"


ParsedDocument = Annotated[
    Union[PdfDocument, DocxDocument, LegacyDocDocument],
    Field(discriminator="kind"),
]


class UnrecognizedDocument(BaseModel):
    """Input is not a document this service parses (distinct from a parse failure)."""

    kind: Literal["unrecognized"] = "unrecognized"
    filename: str
