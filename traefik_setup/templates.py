"""
Config Templater
----------------

Writes the static (traefik.yml) and dynamic (dynamic_conf.yml) configuration
files from fixed templates. The only substitutions are file paths; domains and
backends are placeholders the operator is expected to edit.
"""

from textwrap import dedent

from traefik_setup.config import AppConfig
from traefik_setup.errors import ConfigurationError
from traefik_setup.ui import print_step, print_success, print_warning
from traefik_setup.utils import chown_path, touch_file


def render_static_config(config: AppConfig) -> str:
    return dedent(
        f"""\
        # --- traefik.yml ---
        # Traefik Static Configuration

        # EntryPoints (ports Traefik listens to)
        entryPoints:
          web:
            address: ":80"
          websecure:
            address: ":443"

        # Configuration Providers
        providers:
          file:
            filename: "{config.dynamic_config}"
            watch: true

        # Log Configuration
        log:
          level: "INFO" # Levels: DEBUG, INFO, WARN, ERROR
          filePath: "{config.traefik_log}"

        accessLog:
          filePath: "{config.access_log}"

        # --- Let's Encrypt SSL Configuration ---
        # To enable automatic SSL certificates:
        # 1. Make sure your domain (e.g., sub1.yourdomain.com) points to this server's IP address.
        # 2. In the dynamic_conf.yml file, for each router you want to use HTTPS:
        #    - Change the entryPoint from 'web' to 'websecure'
        #    - Add tls like the router-app2 example
        # 3. Restart Traefik: systemctl restart {config.SERVICE_NAME}

        certificatesResolvers:
          myresolver:
            acme:
              email: "your-email@example.com" # Important: change to your actual email!
              storage: "{config.acme_file}"
              httpChallenge:
                entryPoint: web
        """
    )


def render_dynamic_config(config: AppConfig) -> str:
    return dedent(
        """\
        # --- dynamic_conf.yml ---
        # Dynamic Configuration (routers, services, etc.)

        http:
          routers:
            router-app1:
              rule: "Host(`sub1.yourdomain.com`)"
              service: service-app1
              entryPoints:
                - web

            # router-app2:
            #   rule: "Host(`sub2.yourdomain.com`)"
            #   service: service-app2
            #   entryPoints:
            #     - websecure
            #   tls:
            #     certResolver: myresolver

          services:
            service-app1:
              loadBalancer:
                servers:
                  - url: "http://10.0.0.2:8000"

            # service-app2:
            #   loadBalancer:
            #     servers:
            #       - url: "http://10.0.0.2:8001"
        """
    )


class ConfigTemplater:
    """Emits the static and dynamic configuration files."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def _write(self, path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        except OSError as e:
            raise ConfigurationError(f"Could not write {path}: {e}")
        chown_path(path, self.config.owner)

    def create_static_config(self) -> None:
        cfg = self.config
        print_step(f"Creating static configuration file {cfg.static_config}...")
        self._write(cfg.static_config, render_static_config(cfg))
        for log_file in (cfg.traefik_log, cfg.access_log):
            touch_file(log_file)
            chown_path(log_file, cfg.owner)
        print_success("Static config created")

    def create_dynamic_config(self) -> None:
        cfg = self.config
        print_step(f"Creating dynamic configuration file {cfg.dynamic_config}...")
        self._write(cfg.dynamic_config, render_dynamic_config(cfg))
        print_success("Dynamic config with examples created")
        print_warning(
            "Remember to replace sub1.yourdomain.com, sub2.yourdomain.com and the "
            "ACME email with your actual values!"
        )

    def create_all(self) -> None:
        self.create_static_config()
        self.create_dynamic_config()
