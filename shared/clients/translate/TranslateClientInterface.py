from abc import abstractmethod
from datetime import datetime

import httpx
import pytz

from shared.clients.ClientInterface import ClientInterface
from shared.clients.translate.models.TranslationAttempt import TranslationAttempt
from shared.helper.HelperConfig import HelperConfig
from shared.helper.RateLimiter import SlidingWindowRateLimiter
from shared.models.errors import ProviderError, ValidationError

# status codes for which another account may still succeed
FAILOVER_CATEGORIES: dict[int, str] = {
    401: "unauthorized",
    403: "quota_exceeded",
    429: "rate_limited",
}
DEFAULT_RETRY_AFTER_SECONDS = 60


def classify_status(status_code: int) -> str | None:
    """Return the failover category of a status code, or None if it is not failover-eligible."""
    return FAILOVER_CATEGORIES.get(status_code)


def decide_failover(attempt: TranslationAttempt, has_fallback: bool) -> bool:
    """Return True if a failed attempt should be repeated with the fallback account."""
    return attempt.kind == "failover" and attempt.account == "primary" and has_fallback


def next_quota_reset(now: datetime | None = None) -> datetime:
    """Return the first day of the following calendar month (UTC), when monthly quotas replenish."""
    now = now or datetime.now(pytz.utc)
    if now.month == 12:
        return datetime(now.year + 1, 1, 1, tzinfo=pytz.utc)
    return datetime(now.year, now.month + 1, 1, tzinfo=pytz.utc)


def format_hint(attempt: TranslationAttempt, now: datetime | None = None) -> str:
    """Human-readable next-retry or quota-reset hint for a failed attempt."""
    if attempt.category == "quota_exceeded":
        return f"Quota resets on {next_quota_reset(now).strftime('%Y-%m-%d')} (UTC)."
    if attempt.category == "rate_limited":
        return f"Retry after {attempt.retry_after or DEFAULT_RETRY_AFTER_SECONDS} seconds."
    if attempt.category == "unauthorized":
        return "Check the API key and region of the account."
    return ""


def describe_attempt(attempt: TranslationAttempt) -> str:
    status = attempt.status_code or 0
    reason = httpx.codes.get_reason_phrase(status) or "Unknown"
    return f"{attempt.account} account: {status} {reason} - {attempt.error_message or 'no details'}"


class TranslateClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.rate_limiter: SlidingWindowRateLimiter | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "translate"
        """
        return "translate"

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header_for_key(self, api_key: str) -> dict:
        """
        Returns the authentication headers for a specific account key.

        Args:
            api_key (str): The account key to authenticate with.

        Returns:
            dict: The headers carrying the credential.
        """
        pass

    @abstractmethod
    def _get_primary_api_key(self) -> str:
        """Returns the key of the primary account."""
        pass

    @abstractmethod
    def _get_fallback_api_key(self) -> str | None:
        """Returns the key of the fallback account, or None if none is configured."""
        pass

    def _get_auth_header(self) -> dict:
        return self._get_auth_header_for_key(self._get_primary_api_key())

    def has_fallback(self) -> bool:
        return bool(self._get_fallback_api_key())

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_translate(self) -> str:
        """
        Returns the endpoint path for translation requests (e.g. "/translate").
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_translate_params(self, target_language: str, source_language: str | None = None) -> dict:
        """Build the query parameters of a translation request.

        Args:
            target_language (str): Language code to translate into.
            source_language (str | None): Language code of the input; None lets the provider detect it.

        Returns:
            dict: Query parameters.
        """
        pass

    @abstractmethod
    def get_translate_payload(self, text: str) -> list | dict:
        """Build the JSON request body of a translation request."""
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def extract_translation_from_response(self, response_data: list | dict) -> str | None:
        """Extract the translated text from a successful response, or None if it carries none."""
        pass

    @abstractmethod
    def extract_error_from_response(self, response_data: list | dict) -> tuple[int | str | None, str | None]:
        """Extract (error_code, error_message) from an error response body."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _do_attempt(
        self,
        text: str,
        target_language: str,
        source_language: str | None,
        api_key: str,
        account: str,
    ) -> TranslationAttempt:
        """Send a single translation request with one account and classify its outcome.

        Transport failures are not classified; they propagate as ProviderError.
        """
        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_translate(),
            params=self.get_translate_params(target_language, source_language),
            json=self.get_translate_payload(text),
            additional_headers=self._get_auth_header_for_key(api_key),
        )

        if response.is_success:
            try:
                translated = self.extract_translation_from_response(response.json())
            except ValueError:
                translated = None
            if translated is None:
                return TranslationAttempt(
                    kind="fatal",
                    account=account,
                    status_code=response.status_code,
                    category="error",
                    error_message="Translation API returned empty result",
                )
            return TranslationAttempt(kind="success", account=account, text=translated)

        # best-effort parse of the error body
        error_code: int | str | None = None
        error_message: str | None = response.text[:500] or None
        try:
            error_code, parsed_message = self.extract_error_from_response(response.json())
            error_message = parsed_message or error_message
        except ValueError:
            pass

        retry_after: int | None = None
        if response.status_code == 429:
            raw_retry_after = response.headers.get("Retry-After")
            if raw_retry_after and raw_retry_after.strip().isdigit():
                retry_after = int(raw_retry_after.strip())
                self.logging.warning("Rate limited on %s account. Retry after %d seconds.", account, retry_after)

        category = classify_status(response.status_code)
        self.logging.error(
            "Translation failed on %s account: %d - %s",
            account,
            response.status_code,
            error_message,
        )
        return TranslationAttempt(
            kind="failover" if category else "fatal",
            account=account,
            status_code=response.status_code,
            category=category or "error",
            error_code=error_code,
            error_message=error_message,
            retry_after=retry_after,
        )

    def _build_error(self, attempt: TranslationAttempt) -> ProviderError:
        hint = format_hint(attempt)
        message = f"Translation failed with status {attempt.status_code}: {attempt.error_message or 'no details'}"
        if hint:
            message = f"{message}. {hint}"
        return ProviderError(message, status_code=attempt.status_code, category=attempt.category or "error")

    async def _do_translate_with_failover(self, text: str, target_language: str, source_language: str | None) -> str:
        primary = await self._do_attempt(text, target_language, source_language, self._get_primary_api_key(), "primary")
        if primary.kind == "success":
            return primary.text
        if primary.kind == "fatal":
            raise self._build_error(primary)

        if not decide_failover(primary, self.has_fallback()):
            self.logging.error(
                "Translation failed with status %d and no fallback key configured.",
                primary.status_code,
            )
            raise self._build_error(primary)

        self.logging.warning(
            "Primary account failed with status %d (%s). Switching to fallback account.",
            primary.status_code,
            primary.category,
        )
        fallback = await self._do_attempt(text, target_language, source_language, self._get_fallback_api_key(), "fallback")
        if fallback.kind == "success":
            self.logging.info("Translation succeeded using fallback account.")
            return fallback.text
        if fallback.kind == "fatal":
            raise self._build_error(fallback)

        hints = " ".join(dict.fromkeys(h for h in (format_hint(primary), format_hint(fallback)) if h))
        message = f"Both accounts failed. {describe_attempt(primary)}; {describe_attempt(fallback)}. {hints}".strip()
        self.logging.critical(message)
        raise ProviderError(message, status_code=fallback.status_code, category=fallback.category or "error")

    async def do_translate(self, text: str, target_language: str, source_language: str | None = None) -> str:
        """Translate text through the provider, respecting the rate limit and failing over once.

        Args:
            text (str): The text to translate.
            target_language (str): Language code to translate into (e.g. "cs").
            source_language (str | None): Language code of the input (e.g. "en"), or None to auto-detect.

        Returns:
            str: The translated text.

        Raises:
            ValidationError: If the text or the target language is empty.
            ProviderError: If the translation fails on every eligible account, or fails with a non-eligible error.
        """
        if not text or not text.strip():
            raise ValidationError("Text to translate must not be empty.")
        if not target_language or not target_language.strip():
            raise ValidationError("Target language must not be empty.")

        char_count = len(text)
        self.logging.info("Translating %d characters to %s", char_count, target_language)

        if self.rate_limiter is not None:
            await self.rate_limiter.acquire(char_count)
        succeeded = False
        try:
            translated = await self._do_translate_with_failover(text, target_language, source_language)
            succeeded = True
        finally:
            if self.rate_limiter is not None:
                if succeeded:
                    await self.rate_limiter.record(char_count)
                else:
                    await self.rate_limiter.release(char_count)
        return translated
