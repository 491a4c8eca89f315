from fastapi import Header, HTTPException, Request


async def verify_api_key(request: Request, x_api_key: str | None = Header(None)) -> None:
    """Verify the X-API-Key header against the configured API key.

    The check is only enforced when APP_API_KEY is set; without it the
    endpoints are open.

    Args:
        request (Request): The FastAPI request object (provides app.state).
        x_api_key (str | None): The value of the X-API-Key header.

    Raises:
        HTTPException: 401 if a key is configured and the header is missing or does not match.
    """
    helper_config = request.app.state.helper_config
    expected_key = helper_config.get_string_val("APP_API_KEY", default="")
    if expected_key and x_api_key != expected_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
