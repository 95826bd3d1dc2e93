"""
errors.py — Exception taxonomy for the itinerary job service.

  ValidationError        — bad creation input, or generated output that does
                           not match the Day/Activity shape
  AuthError              — service-account token mint or exchange failed
  NotFoundError          — no job record for the requested id
  GenerationFormatError  — the model answered with something that is not the
                           itinerary JSON document
  StoreError             — Firestore returned a non-success response
  EncodingError          — a value has no Firestore wire representation

app.py maps these onto HTTP responses; jobs.py routes the background ones to
a 'failed' job record.
"""


class ItineraryServiceError(Exception):
    """Base class for every error raised by this service."""


class ValidationError(ItineraryServiceError):
    pass


class AuthError(ItineraryServiceError):
    pass


class NotFoundError(ItineraryServiceError):
    pass


class GenerationFormatError(ItineraryServiceError):
    pass


class StoreError(ItineraryServiceError):

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EncodingError(ItineraryServiceError):
    pass
