"""API Schemas — pydantic request/response models for the HTTP boundary."""
