from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import DimensionMismatchError, ProviderError, ValidationError


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    @abstractmethod
    def get_dimensions(self) -> int:
        """
        Returns the configured embedding dimension. Every stored vector has exactly this length.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embeddings")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, text: str) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            text (str): The text to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "prompt": "..."}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embedding_from_response(self, response_data: dict) -> list[float] | None:
        """Extract the embedding vector from a raw embedding API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[float] | None: The embedding vector, or None if the response carries none.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, text: str) -> list[float]:
        """Send an embedding request and return the validated vector.

        No retry is attempted: a failed call surfaces to the caller immediately.

        Args:
            text (str): The text to embed.

        Returns:
            list[float]: The embedding vector of length get_dimensions().

        Raises:
            ValidationError: If the text is empty or whitespace.
            ProviderError: If the HTTP request fails or returns a non-2xx status.
            DimensionMismatchError: If the vector length differs from the configured dimension.
        """
        if not text or not text.strip():
            raise ValidationError("Text to embed must not be empty.")

        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_embedding(),
            json=self.get_embed_payload(text),
        )
        if not response.is_success:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise ProviderError(
                "Embedding request failed with status %d." % response.status_code,
                status_code=response.status_code,
            )

        try:
            response_data = response.json()
        except ValueError as exc:
            raise ProviderError("Embedding response is not valid JSON.", status_code=response.status_code) from exc

        embedding = self.extract_embedding_from_response(response_data) or []
        expected = self.get_dimensions()
        if len(embedding) != expected:
            self.logging.error(
                "Embedding from %s has %d dimensions, expected %d.",
                self.get_engine_name(), len(embedding), expected,
            )
            raise DimensionMismatchError(expected=expected, actual=len(embedding))
        return [float(v) for v in embedding]
