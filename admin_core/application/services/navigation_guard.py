"""Route guard — decides, before each transition, whether to redirect."""

from admin_core.application.services.auth_store import AuthStore


class NavigationGuard:
    """Redirects anonymous users away from protected routes and signed-in users off the landing page."""

    def __init__(
        self,
        auth_store: AuthStore,
        *,
        home_path: str = "/",
        dashboard_path: str = "/dashboard",
    ):
        self._auth_store = auth_store
        self._home_path = home_path
        self._dashboard_path = dashboard_path

    async def before_each(self, target_path: str, *, requires_auth: bool) -> str | None:
        """Return the path to redirect to, or None to let the navigation proceed."""
        if self._auth_store.is_loading:
            await self._auth_store.initialize_auth()

        authenticated = self._auth_store.is_authenticated
        if requires_auth and not authenticated:
            return self._home_path
        if not requires_auth and authenticated and target_path == self._home_path:
            return self._dashboard_path
        return None
