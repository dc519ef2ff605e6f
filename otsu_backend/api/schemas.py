"""JSON envelopes returned by the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    message: str


class ProcessingResponse(BaseModel):
    success: bool = True
    message: str
    threshold_value: float
    output_filename: str
    processed_image_base64: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


__all__ = ["ErrorResponse", "HealthResponse", "ProcessingResponse"]
