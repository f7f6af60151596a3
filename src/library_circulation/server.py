"""Library Circulation MCP Server.

Exposes the circulation engine over MCP: tools for every state-changing
operation (borrow, return, reserve, approve, ...) and resources for the read
queries (a member's loans and fines, a book's copies and holds).

Run with ``library-circulation`` or ``python -m library_circulation.server``.
"""

import logging
import signal
import sys
from typing import Any

from fastmcp import FastMCP

from library_circulation.config import get_config
from library_circulation.database.session import atomic, get_db_manager
from library_circulation.database.settings_repository import SettingsRepository
from library_circulation.resources import all_resources
from library_circulation.seed import is_empty, seed_database
from library_circulation.tools import all_tools

# stderr only: stdout carries the stdio transport
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)

logger = logging.getLogger(__name__)

config = get_config()

mcp = FastMCP(
    name=config.server_name,
    instructions=(
        "Library circulation server. Use tools to lend and return copies, place and manage "
        "reservations, record fine payments and maintain copy inventory. Use resources to "
        "read a member's loans, reservations and unpaid fines, or a book's copies and holds. "
        "Refusals (suspended member, quota reached, no copy available) come back as tool "
        "errors with an error code."
    ),
)

for resource in all_resources:
    uri = resource.get("uri_template", resource.get("uri"))
    logger.debug("Registering resource: %s with URI: %s", resource["name"], uri)
    mcp.resource(
        uri=uri,
        name=resource["name"],
        description=resource["description"],
        mime_type=resource["mime_type"],
    )(resource["handler"])

logger.info("Registered %d resources", len(all_resources))

for tool in all_tools:
    logger.debug("Registering tool: %s", tool["name"])
    mcp.tool(
        name=tool["name"],
        description=tool["description"],
    )(tool["handler"])

logger.info("Registered %d tools", len(all_tools))


def prepare_database() -> None:
    """Create tables, make sure every policy key has a value, seed demo data if asked."""
    db_manager = get_db_manager()
    db_manager.init_database()

    with db_manager.session_scope() as session:
        with atomic(session, "seed settings"):
            added = SettingsRepository(session).seed_defaults()
        if added:
            logger.info("Stored %d default circulation settings", added)

        if config.seed_on_startup and is_empty(session):
            seed_database(session)


def run_stdio_server() -> None:
    info = config.server_info
    logger.info("Starting %s v%s on %s transport", info["name"], info["version"], info["transport"])

    if config.is_development:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug mode enabled")
    else:
        logging.getLogger().setLevel(config.log_level)
        logging.getLogger("fastmcp").setLevel(logging.WARNING)

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        get_db_manager().close()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    mcp.run(transport="stdio")


def main() -> None:
    try:
        logger.info("Library Circulation MCP Server %s", config.server_version)
        prepare_database()

        if config.transport == "stdio":
            run_stdio_server()
        else:
            logger.error("Unsupported transport: %s", config.transport)
            sys.exit(1)

    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Failed to start MCP server")
        sys.exit(1)


if __name__ == "__main__":
    main()
