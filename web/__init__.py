from web.server import WebServer, create_and_start_server

__all__ = ["WebServer", "create_and_start_server"]
