"""Ephemeral port discovery for pgsmoke."""

import socket

from pgsmoke.constants import RESERVATION_HOST
from pgsmoke.errors import ProvisioningError
from pgsmoke.errors_catalog import actionable_error


class PortReservation:
    """A throwaway listener holding an OS-assigned port until released.

    The port is only guaranteed free while the listener is open. Once released,
    another process may bind it before the container does.
    """

    def __init__(self, listener, host: str):
        self._listener = listener
        self.host = host
        self.port: int = listener.getsockname()[1]

    @property
    def released(self) -> bool:
        return self._listener is None

    def release(self):
        if self._listener is None:
            return
        self._listener.close()
        self._listener = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


class PortReservationService:
    """Finds free local TCP ports by binding to port 0."""

    def __init__(self, logger, socket_module=socket):
        self.logger = logger
        self.socket = socket_module

    def reserve(self, host: str = RESERVATION_HOST) -> PortReservation:
        listener = self.socket.socket(self.socket.AF_INET, self.socket.SOCK_STREAM)
        try:
            listener.bind((host, 0))
            listener.listen(1)
            reservation = PortReservation(listener, host)
        except OSError as exc:
            listener.close()
            raise ProvisioningError(
                actionable_error("port_reservation_failed", host=host, error=exc)
            ) from exc

        self.logger.debug("Reserved ephemeral port %s on %s", reservation.port, host)
        return reservation

    def find_free_port(self, host: str = RESERVATION_HOST) -> int:
        with self.reserve(host) as reservation:
            return reservation.port
