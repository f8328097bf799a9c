from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

UploadStatus = Literal["uploaded", "processing", "processed"]

# Largest integer BSON can store (int64).
MAX_FILE_SIZE = 2**63 - 1


class NewUpload(BaseModel):
    user_id: str = Field(min_length=1)
    filename: str = Field(min_length=1)
    original_filename: str = Field(min_length=1)
    file_url: str = Field(min_length=1)
    file_size: int | None = Field(default=None, ge=0, le=MAX_FILE_SIZE)
    status: UploadStatus = Field(default="uploaded")


class UploadRecord(NewUpload):
    id: str
    upload_date: datetime

    def to_public(self) -> dict:
        # Owner is implied by the query, so it is not echoed back.
        return self.model_dump(mode="json", exclude={"user_id"})


class _CamelBody(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )


class SaveUploadRequest(_CamelBody):
    user_id: str | None = Field(default=None, alias="userId")
    filename: str | None = None
    original_filename: str | None = Field(default=None, alias="originalFilename")
    file_url: str | None = Field(default=None, alias="fileUrl")
    file_size: int | None = Field(default=None, alias="fileSize", le=MAX_FILE_SIZE)
    status: str | None = None


class ListUploadsRequest(_CamelBody):
    user_id: str | None = Field(default=None, alias="userId")


class PrepareUploadRequest(_CamelBody):
    user_id: str | None = Field(default=None, alias="userId")
    original_filename: str | None = Field(default=None, alias="originalFilename")
    content_type: str | None = Field(default=None, alias="contentType")
    file_size: int | None = Field(default=None, alias="fileSize", le=MAX_FILE_SIZE)


class AnalyzeRequest(_CamelBody):
    user_id: str | None = Field(default=None, alias="userId")
    upload_id: str | None = Field(default=None, alias="uploadId")


class ChartRequest(AnalyzeRequest):
    x_axis: str | None = Field(default=None, alias="xAxis")
    y_axis: str | None = Field(default=None, alias="yAxis")
    chart_type: str | None = Field(default=None, alias="chartType")
