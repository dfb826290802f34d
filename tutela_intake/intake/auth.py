from abc import ABC, abstractmethod

from tutela_intake.intake.exceptions import NotAuthenticatedError


class BaseAuthProvider(ABC):
    """Supplies the opaque id of the actor operating the pipeline."""

    @abstractmethod
    def current_actor(self) -> str | None:
        """Return the authenticated actor id, or None when nobody is signed in."""

    def require_actor(self) -> str:
        """Return the actor id.

        Raises:
            NotAuthenticatedError: if no actor is authenticated.
        """
        actor_id = self.current_actor()
        if not actor_id:
            raise NotAuthenticatedError("No authenticated user")
        return actor_id


class StaticAuthProvider(BaseAuthProvider):
    """Auth provider bound to one actor id, e.g. from settings or a CLI flag."""

    def __init__(self, actor_id: str | None) -> None:
        self._actor_id = actor_id or None

    def current_actor(self) -> str | None:
        return self._actor_id
