"""User profile API routes."""

from fastapi import APIRouter

from swiftjobs.dependencies import CurrentIdentity, DBSession
from swiftjobs.errors.exceptions import NotFoundError
from swiftjobs.models.user import ProfileUpdate, UserResponse
from swiftjobs.repositories.user_repo import UserRepository

router = APIRouter(tags=["Users"])


@router.put("/users/me", response_model=UserResponse)
async def upsert_my_profile(body: ProfileUpdate, identity: CurrentIdentity, db: DBSession):
    """Create or replace the caller's profile. Role always comes from the token."""
    skills = [s.strip() for s in body.skills if s.strip()]
    user = await UserRepository(db).upsert_profile(identity.user_id, identity.role, body.display_name, skills)
    await db.commit()
    return UserResponse.model_validate(user)


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, identity: CurrentIdentity, db: DBSession):
    user = await UserRepository(db).get(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return UserResponse.model_validate(user)
