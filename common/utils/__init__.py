from common.utils.cancellation import CancellationToken

__all__ = ["CancellationToken"]
