"""Install, configure and remove the Traefik reverse proxy on Debian and Ubuntu."""

__version__ = "1.0.0"
