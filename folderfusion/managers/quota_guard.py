from typing import Optional

from folderfusion.core.constants import LOW_QUOTA_THRESHOLD, MetricNames
from folderfusion.core.exceptions import (
    SourceCodeError,
    QuotaExceededError,
    PermissionDeniedError
)
from folderfusion.core.logger import get_logger, log_business_metric
from folderfusion.managers.github_client import GitHubClient, RateLimit

logger = get_logger(__name__)


def check_quota(client: GitHubClient, threshold: int = LOW_QUOTA_THRESHOLD) -> Optional[RateLimit]:
    """
    Consulta la cuota restante antes de recorrer un repositorio.

    - remaining == 0: lanza QuotaExceededError (con reset_at)
    - 0 < remaining < threshold: warning y continúa
    - Cualquier otro fallo de la consulta: se registra y se continúa (devuelve None)
    """
    try:
        rate = client.get_rate_limit()
    except QuotaExceededError:
        raise
    except SourceCodeError as e:
        logger.warning(f"⚠️ Rate limit check failed, continuing: {e.message}", extra={"error_kind": e.kind.value})
        return None
    except Exception as e:
        logger.warning(f"⚠️ Rate limit check failed, continuing: {e}")
        return None

    log_business_metric(MetricNames.QUOTA_REMAINING, rate.remaining, "requests")

    if rate.remaining <= 0:
        logger.error("⏳ GitHub rate limit exhausted", extra={
            "reset_at": rate.reset_at.isoformat() if rate.reset_at else None,
            "has_token": client.has_token
        })
        raise QuotaExceededError(reset_at=rate.reset_at, has_token=client.has_token)

    if rate.remaining < threshold:
        logger.warning(f"⚠️ Low GitHub rate limit: {rate.remaining} remaining", extra={
            "remaining": rate.remaining,
            "limit": rate.limit
        })

    return rate


def validate_token(client: GitHubClient) -> str:
    """
    Verifica que el token sea válido y devuelve el login asociado.

    Raises:
        PermissionDeniedError: Si GitHub rechaza el token
    """
    if not client.has_token:
        raise PermissionDeniedError("No se proporcionó token de acceso", provider="github")

    user = client.get_authenticated_user()
    login = user.get("login", "")
    logger.info(f"🔐 GitHub token validated for user: {login}")
    return login
