import os


def _parse_bool(value):
    """Parse boolean value from string."""
    return value.lower() == "true" if value else False


def _parse_int(value, var_name):
    """Parse integer value with error handling."""
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid integer value for {var_name}: {value}")


# UVICORN_* environment variable -> (uvicorn.Config keyword, parser)
UVICORN_OPTIONS = {
    "UVICORN_PROXY_HEADERS": ("proxy_headers", _parse_bool),
    "UVICORN_FORWARDED_ALLOW_IPS": ("forwarded_allow_ips", str),
    "UVICORN_WORKERS": ("workers", lambda x: _parse_int(x, "UVICORN_WORKERS")),
    "UVICORN_ACCESS_LOG": ("access_log", _parse_bool),
    "UVICORN_LOOP": ("loop", str),
    "UVICORN_HTTP": ("http", str),
    "UVICORN_LIMIT_CONCURRENCY": (
        "limit_concurrency",
        lambda x: _parse_int(x, "UVICORN_LIMIT_CONCURRENCY"),
    ),
    "UVICORN_TIMEOUT_KEEP_ALIVE": (
        "timeout_keep_alive",
        lambda x: _parse_int(x, "UVICORN_TIMEOUT_KEEP_ALIVE"),
    ),
    "UVICORN_SSL_KEYFILE": ("ssl_keyfile", str),
    "UVICORN_SSL_CERTFILE": ("ssl_certfile", str),
    "UVICORN_ROOT_PATH": ("root_path", str),
}


def load_uvicorn_config(args=None):
    """
    Load Uvicorn configuration from environment variables and CLI args.
    Returns a dict suitable for passing to uvicorn.Config.
    """
    config_kwargs = dict(
        app="app.app:app",
        host=os.getenv("UVICORN_HOST", "0.0.0.0"),
        port=_parse_int(os.getenv("UVICORN_PORT", "8000"), "UVICORN_PORT"),
        log_level=os.getenv("UVICORN_LOG_LEVEL", "info"),
        reload=args.reload if args else False,
        reload_dirs=["app"] if (args and args.reload) else None,
    )

    for env_var, (config_key, parser) in UVICORN_OPTIONS.items():
        value = os.getenv(env_var)
        if value:
            try:
                config_kwargs[config_key] = parser(value)
            except ValueError as e:
                raise ValueError(f"Configuration error for {env_var}: {e}")

    return config_kwargs
