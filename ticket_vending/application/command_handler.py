"""
Command Handler - Routes Redis commands to facade methods.

Provides command routing with argument validation and error handling.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from core.exceptions import VendingSystemError
from loggers import logger


CommandHandlerFunc = Callable[..., Awaitable[dict[str, Any]]]


@dataclass
class CommandResponse:
    """
    Standardized response for command execution.

    Attributes:
        command_id: The ID of the executed command.
        success: Whether the command succeeded.
        message: Human-readable message.
        data: Optional response data.
    """

    command_id: Optional[int] = None
    success: bool = False
    message: Optional[str] = None
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "command_id": self.command_id,
            "success": self.success,
            "message": self.message,
            "data": self.data,
        }


@dataclass
class CommandDefinition:
    """
    Definition of a command.

    Attributes:
        name: Command name.
        handler: Handler function.
        required_args: List of required argument names.
        description: Human-readable description.
    """

    name: str
    handler: CommandHandlerFunc
    required_args: list[str]
    description: str = ""


class CommandHandler:
    """
    Routes commands to their handlers on the vending machine facade.
    """

    def __init__(self, api: Any) -> None:
        """
        Initialize the command handler.

        Args:
            api: The VendingMachineFacade instance.
        """
        self._api = api
        self._commands: dict[str, CommandDefinition] = {}
        self._register_default_commands()

    def _register_default_commands(self) -> None:
        # Transaction flow
        self.register(
            "select_ticket",
            self._api.select_ticket,
            ["ticket_type"],
            "Select a ticket type",
        )
        self.register(
            "insert_money",
            self._api.insert_money,
            ["amount"],
            "Insert money for the selected ticket",
        )
        self.register(
            "cancel_transaction",
            self._api.cancel_transaction,
            [],
            "Cancel the current transaction and refund change",
        )
        self.register(
            "dispense_ticket",
            self._api.dispense_ticket,
            [],
            "Dispense the paid ticket, or finish a dispensed transaction",
        )

        # Queries
        self.register(
            "status",
            self._api.status,
            [],
            "Get machine state, selection, inserted amount and stock",
        )
        self.register(
            "catalog",
            self._api.catalog,
            [],
            "Get ticket prices",
        )

        # Redis mirror
        self.register(
            "publish_catalog",
            self._api.publish_catalog,
            [],
            "Write ticket prices to Redis",
        )
        self.register(
            "stored_state",
            self._api.stored_state,
            [],
            "Read the last mirrored state from Redis",
        )

    def register(
        self,
        command_name: str,
        handler: CommandHandlerFunc,
        required_args: list[str],
        description: str = "",
    ) -> None:
        """
        Register a command handler.

        Args:
            command_name: The name of the command.
            handler: The async handler function.
            required_args: List of required argument names.
            description: Human-readable description.
        """
        self._commands[command_name] = CommandDefinition(
            name=command_name,
            handler=handler,
            required_args=required_args,
            description=description,
        )

    def get_available_commands(self) -> list[dict[str, Any]]:
        """Get list of available commands with their descriptions."""
        return [
            {
                "name": cmd.name,
                "required_args": cmd.required_args,
                "description": cmd.description,
            }
            for cmd in self._commands.values()
        ]

    async def execute(self, command_data: dict[str, Any]) -> dict[str, Any]:
        """
        Execute a command based on command data.

        Args:
            command_data: Dictionary containing 'command', 'command_id', and 'data'.

        Returns:
            Response dictionary with execution result.
        """
        command = command_data.get("command")
        command_id = command_data.get("command_id")
        data = command_data.get("data", {}) or {}

        response = CommandResponse(command_id=command_id)

        if command not in self._commands:
            logger.warning(f"Unknown command: {command}")
            response.message = f"Unknown command: {command}"
            return response.to_dict()

        definition = self._commands[command]

        try:
            kwargs = {arg: data.get(arg) for arg in definition.required_args}

            missing = [arg for arg in definition.required_args if kwargs.get(arg) is None]
            if missing:
                response.message = f"Missing required arguments: {missing}"
                return response.to_dict()

            result = await definition.handler(**kwargs)

            if isinstance(result, dict):
                response.success = result.get("success", False)
                response.message = result.get("message")
                response.data = result.get("data")
            else:
                response.success = True
                response.data = result

        except VendingSystemError as e:
            logger.error(f"Error executing command '{command}': {e.message}")
            response.message = e.message
            response.data = e.to_dict()
        except Exception as e:
            logger.exception(f"Unexpected error executing command '{command}': {e}")
            response.message = f"Error: {e}"

        return response.to_dict()


async def ticket_vending_commands(
    command_data: dict[str, Any],
    api: Any,
) -> dict[str, Any]:
    """
    Execute a command on the vending machine facade.

    This is the entry point for command execution from Redis pub/sub.

    Args:
        command_data: Dictionary containing command name, ID, and data.
        api: The VendingMachineFacade instance.

    Returns:
        Response dictionary with execution result.
    """
    handler = CommandHandler(api)
    return await handler.execute(command_data)
