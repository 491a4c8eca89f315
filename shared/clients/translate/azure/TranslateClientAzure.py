from shared.clients.translate.TranslateClientInterface import TranslateClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.RateLimiter import SlidingWindowRateLimiter
from shared.models.config import EnvConfig

# Azure allows roughly 33,300 characters per minute on the free tier
DEFAULT_MAX_CHARS_PER_MINUTE = 33000


class TranslateClientAzure(TranslateClientInterface):
    def __init__(self, helper_config: HelperConfig, rate_limiter: SlidingWindowRateLimiter | None = None):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("ENDPOINT", default="https://api.cognitive.microsofttranslator.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")
        self._fallback_api_key = self.get_config_val("FALLBACK_API_KEY", default="", val_type="string")
        self._region = self.get_config_val("REGION", default=None, val_type="string")
        max_chars = int(self.get_config_val("MAX_CHARS_PER_MINUTE", default=DEFAULT_MAX_CHARS_PER_MINUTE, val_type="number"))
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter(max_chars=max_chars, logger=self.logging)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Azure"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="FALLBACK_API_KEY", val_type="string", default=""),
            EnvConfig(env_key="REGION", val_type="string", default=None),
            EnvConfig(env_key="ENDPOINT", val_type="string", default="https://api.cognitive.microsofttranslator.com"),
            EnvConfig(env_key="MAX_CHARS_PER_MINUTE", val_type="number", default=DEFAULT_MAX_CHARS_PER_MINUTE),
        ]

    ################ AUTH ##################
    def _get_auth_header_for_key(self, api_key: str) -> dict:
        return {
            "Ocp-Apim-Subscription-Key": api_key,
            "Ocp-Apim-Subscription-Region": self._region,
        }

    def _get_primary_api_key(self) -> str:
        return self._api_key

    def _get_fallback_api_key(self) -> str | None:
        return self._fallback_api_key or None

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/languages?api-version=3.0&scope=translation"

    def get_endpoint_translate(self) -> str:
        return "/translate"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_translate_params(self, target_language: str, source_language: str | None = None) -> dict:
        # textType=html keeps markdown structure intact
        params = {"api-version": "3.0", "to": target_language, "textType": "html"}
        if source_language:
            params["from"] = source_language
        return params

    def get_translate_payload(self, text: str) -> list:
        return [{"Text": text}]

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_translation_from_response(self, response_data: list | dict) -> str | None:
        if not isinstance(response_data, list) or not response_data:
            return None
        translations = response_data[0].get("translations") or []
        if not translations:
            return None
        return translations[0].get("text")

    def extract_error_from_response(self, response_data: list | dict) -> tuple[int | str | None, str | None]:
        if not isinstance(response_data, dict):
            return None, None
        error = response_data.get("error")
        if not isinstance(error, dict):
            return None, str(error) if error else None
        return error.get("code"), error.get("message")
