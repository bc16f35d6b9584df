# backend/accredb/serve.py
"""
Process entry point: `python -m accredb.serve` or the `accredb-serve` script.

Everything is driven by environment variables so the same image runs
behind the checkpoint load balancer and on a laptop.
"""

import logging
import os
from typing import Dict, Optional

import uvicorn

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


def _ssl_options() -> Dict[str, Optional[str]]:
    env_to_option = {
        "SSL_CERTFILE": "ssl_certfile",
        "SSL_KEYFILE": "ssl_keyfile",
        "SSL_CA_CERTS": "ssl_ca_certs",
        "SSL_KEYFILE_PASSWORD": "ssl_keyfile_password",
    }
    return {option: os.getenv(env) for env, option in env_to_option.items() if os.getenv(env)}


def _configure_logging(level: str) -> None:
    # uvicorn configures its own loggers; this covers the accredb.* tree.
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def main() -> None:
    log_level = os.getenv("LOG_LEVEL", "info")
    _configure_logging(log_level)

    uvicorn.run(
        "accredb.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=_env_flag("RELOAD"),
        log_level=log_level,
        proxy_headers=True,
        forwarded_allow_ips=os.getenv("FORWARDED_ALLOW_IPS", "*"),
        **_ssl_options(),
    )


if __name__ == "__main__":
    main()
