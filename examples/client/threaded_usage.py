"""
Threaded usage example of LocationShareClient.

Shares a slowly drifting position with every group in a background thread
and prints the positions other members share, while the main thread keeps
working. Run ``locshare keygen``, ``locshare signup`` and ``locshare login``
first so the default store holds an identity and a token.
"""

import logging
import sys
import time

from locshare import ClientConfig, Coordinates, LocationShareClient


def error_callback(error: Exception) -> None:
    """Custom error handler for background cycle errors."""
    logger = logging.getLogger(__name__)
    logger.error("Location sharing error: %s", error)


def main() -> None:
    # Configure logging
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)

    position = {"latitude": 52.5200, "longitude": 13.4050}

    def current_position() -> Coordinates:
        position["latitude"] += 0.0001
        return Coordinates(**position, accuracy=15)

    def show_markers(markers: list) -> None:
        for marker in markers:
            logger.info(
                "%s is at %.5f, %.5f", marker.user, marker.latitude, marker.longitude
            )

    try:
        client = LocationShareClient(
            ClientConfig(
                on_error_callback=error_callback,
                fanout_interval=20,
                retrieval_interval=5,
            ),
            location_provider=current_position,
            marker_sink=show_markers,
        )

        client.start_in_thread()
        logger.info("Location sharing started in background threads")

        for i in range(6):
            logger.info("Main thread working... Iteration %d", i + 1)
            time.sleep(10)

        client.stop_thread(wait=True)
        logger.info("Threaded usage example completed")
    except Exception:
        logger.exception("Error")
        sys.exit(1)


if __name__ == "__main__":
    main()
