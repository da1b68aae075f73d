"""Request-frame pipeline for the bungie.net platform JSON API."""

__version__ = "0.3.0"

from .config import PlatformOptions, load_options_from_env
from .cookies import Cookie, CookieProvider, Cookies, CurrentUser, MemoryCookieProvider
from .errors import (
    CookieNotFoundError,
    CorruptResponseError,
    ErrorCode,
    FrameStateError,
    LifecycleError,
    NetworkError,
    NoCookieProviderError,
    NoCsrfTokenError,
    PlatformError,
    RequestEncodingError,
)
from .frame import Frame, FrameState
from .frame_manager import FrameManager
from .frame_set import FrameSet
from .lifecycle import LifecycleEvent, advance, allowed_next_events, is_terminal_event
from .platform import Platform, build_platform_uri
from .platform_request import LifecycleEventData, PlatformRequest, RequestOptions, encode_body, parse_response
from .plugins import CookieJarPlugin, OAuthPlugin, Plugin

__all__ = [
    "__version__",
    "Cookie",
    "CookieJarPlugin",
    "CookieNotFoundError",
    "CookieProvider",
    "Cookies",
    "CorruptResponseError",
    "CurrentUser",
    "ErrorCode",
    "Frame",
    "FrameManager",
    "FrameSet",
    "FrameState",
    "FrameStateError",
    "LifecycleError",
    "LifecycleEvent",
    "LifecycleEventData",
    "MemoryCookieProvider",
    "NetworkError",
    "NoCookieProviderError",
    "NoCsrfTokenError",
    "OAuthPlugin",
    "Platform",
    "PlatformError",
    "PlatformOptions",
    "PlatformRequest",
    "Plugin",
    "RequestEncodingError",
    "RequestOptions",
    "advance",
    "allowed_next_events",
    "build_platform_uri",
    "encode_body",
    "is_terminal_event",
    "load_options_from_env",
    "parse_response",
]
