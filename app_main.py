"""Application entry point for the ExamLink host."""

from __future__ import annotations

import socket

from exam_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from exam_app.core.exam_manager import ExamManager
from exam_app.server.api_server import start_api_server
from exam_app.utils.logging_config import configure_logging


def _determine_base_url(port: int) -> str:
    """Best-effort determination of the local IP for student-facing links."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}"


def main() -> None:
    """Initialize logging and serve the exam API until interrupted."""
    logger = configure_logging()
    logger.info("Starting ExamLink host...")

    base_url = _determine_base_url(DEFAULT_PORT)
    exam_manager = ExamManager(base_url=base_url)
    server_thread = start_api_server(exam_manager=exam_manager, host=DEFAULT_HOST, port=DEFAULT_PORT)
    logger.info("Exam links will point at %s", base_url)

    try:
        server_thread.join()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        exam_manager.shutdown()


if __name__ == "__main__":
    main()
