"""
Flask server for the SafeHours dashboard API.
"""
import logging
import socket
from typing import Iterable, Optional

from flask import Flask

from ..config import WEB_PORTS, Config, settings, setup_logging
from ..db import ensure_db_exists
from ..services import ActivityService, ComplianceService

logger = logging.getLogger(__name__)


def find_free_port(ports: Iterable[int] = WEB_PORTS) -> int:
    """Return the first port in ``ports`` that can be bound on localhost."""
    tried = []
    for port in ports:
        tried.append(str(port))
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            try:
                s.bind(("127.0.0.1", port))
                return port
            except OSError:
                continue
    raise RuntimeError(f"No free port found ({'/'.join(tried)} busy)")


def create_app(activity_service: Optional[ActivityService] = None,
               compliance_service: Optional[ComplianceService] = None,
               config: Optional[Config] = None) -> Flask:
    """
    Create the Flask app.

    Args:
        activity_service: Service used for activity reads and writes
        compliance_service: Service used for compliance metrics; by default it
            shares the activity service's repository and reads thresholds
            from ``config``
        config: Threshold settings, the global ``settings`` if omitted
    """
    app = Flask(__name__)

    activity_service = activity_service or ActivityService()
    config = config or settings
    if compliance_service is None:
        compliance_service = ComplianceService(activity_service.repo, config=config)

    from . import routes
    routes.register_routes(app, activity_service, compliance_service, config)

    return app


def main() -> None:
    setup_logging()
    ensure_db_exists()
    port = find_free_port()
    app = create_app()
    logger.info("SafeHours dashboard on http://127.0.0.1:%d", port)
    app.run(host="127.0.0.1", port=port)


if __name__ == "__main__":
    main()
