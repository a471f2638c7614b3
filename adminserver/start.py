from adminserver.config import ServerConfig
from adminserver.infra.logging import configure_logging
from adminserver.server import Server
from adminserver.settings import settings


def main() -> None:
    configure_logging(level=settings.LOG_LEVEL, fmt=settings.LOG_FORMAT)
    server = Server(ServerConfig.from_settings(settings))
    server.start()


if __name__ == '__main__':
    main()
