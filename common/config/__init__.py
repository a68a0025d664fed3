from common.config.config import ClientConfig, get_env

__all__ = ["ClientConfig", "get_env"]
