"""Command dispatch: handlers, dispatcher and decision-to-command factory."""

from voxbot.dispatch.dispatcher import CommandDispatcher
from voxbot.dispatch.factory import CommandFactory
from voxbot.dispatch.handlers import DryRunHandler, Handler, HandlerRegistry

__all__ = ["CommandDispatcher", "CommandFactory", "DryRunHandler", "Handler", "HandlerRegistry"]
