import logging
from fastapi import APIRouter, Depends, status
from sqlmodel import Session, select
from app.database import get_session
from app.models.user import User
from app.schemas.user_schemas import UserRegister, UserLogin, Token, UserOut
from app.utils.errors import AuthenticationError, ValidationError
from app.utils.hash import hash_password, verify_password
from app.utils.token import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter()


def _user_out(user: User) -> UserOut:
    return UserOut(id=user.id, name=user.name, email=user.email, role=user.role)


# -------- AUTH ROUTES --------

@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register_user(payload: UserRegister, session: Session = Depends(get_session)):
    email = payload.email.lower()
    existing_user = session.exec(select(User).where(User.email == email)).first()
    if existing_user:
        raise ValidationError("User already exists with this email")

    # role is never client-suppliable
    user = User(
        name=payload.name,
        email=email,
        password=hash_password(payload.password),
    )

    session.add(user)
    session.commit()
    session.refresh(user)

    logger.info("Registered user %s", user.id)

    token = create_access_token({"user_id": user.id})
    return Token(access_token=token, user=_user_out(user))


@router.post("/login", response_model=Token)
def login(payload: UserLogin, session: Session = Depends(get_session)):
    user = session.exec(select(User).where(User.email == payload.email.lower())).first()

    if not user or not verify_password(payload.password, user.password):
        raise AuthenticationError("Invalid credentials")

    token = create_access_token({"user_id": user.id})
    return Token(access_token=token, user=_user_out(user))


@router.post("/logout")
def logout():
    return {"message": "Logout successful"}
