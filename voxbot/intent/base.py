"""Abstract base class for intent classification strategies."""

from abc import ABC, abstractmethod

from voxbot.intent.types import StrategyResult


class IntentStrategy(ABC):
    """
    Abstract base for all classification strategies.

    The ensemble treats every strategy identically, whether it is a keyword
    matcher, a similarity lookup, or a remote model call.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy name used in logs and vote bookkeeping."""
        ...

    @abstractmethod
    async def detect(self, text: str, language: str) -> StrategyResult:
        """
        Classify an utterance.

        Args:
            text: Normalized utterance.
            language: Language code (e.g. "en", "tr").

        Returns:
            StrategyResult; an Unknown label means "no opinion".

        Raises:
            StrategyError (or any exception): the ensemble turns it into a
            zero-weight vote.
        """
        ...
