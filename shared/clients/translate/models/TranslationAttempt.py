"""TranslationAttempt model — classified outcome of a single translation request."""

from typing import Literal

from pydantic import BaseModel


class TranslationAttempt(BaseModel):
    """Outcome of one request against one provider account.

    The failover decision is taken on ``kind`` alone:
      - "success":  the request returned a translation.
      - "failover": unauthorized (401), quota exceeded (403) or rate limited (429);
                    another account may still succeed.
      - "fatal":    any other failure; retrying with another account is pointless.

    Attributes:
        kind:          Classified outcome.
        account:       Which credential was used ("primary" or "fallback").
        text:          The translated text, set on success only.
        status_code:   HTTP status of the failed request.
        category:      Failure category ("unauthorized", "quota_exceeded", "rate_limited", "error").
        error_code:    Provider error code parsed from the error body, if any.
        error_message: Provider error message parsed from the error body, or the raw body.
        retry_after:   Seconds from the Retry-After header of a 429 response.
    """

    kind: Literal["success", "failover", "fatal"]
    account: str
    text: str | None = None
    status_code: int | None = None
    category: str | None = None
    error_code: int | str | None = None
    error_message: str | None = None
    retry_after: int | None = None
