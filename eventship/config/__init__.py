from .settings import TransmissionConfig, get_transmission_config

__all__ = [
    "TransmissionConfig",
    "get_transmission_config",
]
