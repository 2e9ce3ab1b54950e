import logging

from config.settings import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_configured = False


def setup_logging(level: str | None = None) -> None:
    """루트 로거를 settings.LOG_LEVEL 기준으로 한 번만 설정"""
    global _configured
    if _configured:
        return

    logging.basicConfig(level=level or settings.LOG_LEVEL, format=LOG_FORMAT)

    # HTTP 라이브러리 디버그 로그 비활성화
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True
