from vatofotsy_api.routes.auth import router as auth_router
from vatofotsy_api.routes.files import router as files_router
from vatofotsy_api.routes.invites import router as invites_router
from vatofotsy_api.routes.organizations import router as organizations_router
from vatofotsy_api.routes.polls import router as polls_router
from vatofotsy_api.routes.users import router as users_router

__all__ = [
    "auth_router",
    "files_router",
    "invites_router",
    "organizations_router",
    "polls_router",
    "users_router",
]
