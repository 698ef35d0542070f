"""User registration with conflict detection and password policy."""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from .audit import AuditRecorder
from .exceptions import AuthValidationError, ConflictError, InternalError, handle_error
from .password_hasher import PasswordHasher
from .requests import RegistrationRequest
from .types import AuditAction, RequestContext, User
from .user_store import UserStore

logger = logging.getLogger(__name__)


def parse_request(model: type, payload: Any):
    """Validate ``payload`` into ``model``; pydantic errors become AuthValidationError."""
    if isinstance(payload, model):
        return payload
    if not isinstance(payload, Mapping):
        raise AuthValidationError(f"Expected {model.__name__} or a mapping")

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in e.errors()
        ]
        raise AuthValidationError(
            f"Invalid {model.__name__}", details={"errors": errors}
        ) from e


class UserRegistrar:
    """Creates accounts.

    Email and phone number uniqueness is checked up front for a clear error,
    and again by the store on insert to cover concurrent registrations.
    """

    def __init__(
        self,
        user_store: UserStore,
        hasher: PasswordHasher,
        audit: AuditRecorder,
    ):
        self.user_store = user_store
        self.hasher = hasher
        self.audit = audit

    async def register(
        self,
        request: RegistrationRequest | Mapping[str, Any],
        context: RequestContext | None = None,
    ) -> User:
        """
        Register a new user.

        Args:
            request: Registration payload, validated if given as a mapping
            context: Request provenance for the audit event

        Returns:
            The created user (status PENDING_VERIFICATION)

        Raises:
            AuthValidationError: Malformed input or weak password
            ConflictError: Email or phone number already in use
        """
        request = parse_request(RegistrationRequest, request)

        try:
            if await self.user_store.find_by_email(request.email):
                raise ConflictError("Email already in use.")

            if request.phone_number and await self.user_store.find_by_phone_number(
                request.phone_number
            ):
                raise ConflictError("Phone number already in use.")

            user = await self.user_store.create(
                email=request.email,
                password_hash=self.hasher.hash(request.password),
                first_name=request.first_name,
                last_name=request.last_name,
                phone_number=request.phone_number,
            )
            if user is None:
                raise InternalError("Error during user creation.")
        except Exception as e:
            handle_error(e, "Error during user registration.")

        self.audit.record_user_action(
            AuditAction.CREATE,
            user_id=user.id,
            performed_by_id=user.id,
            new_values={
                "email": user.email,
                "role": user.role.value,
                "status": user.status.value,
            },
            context=context,
        )

        logger.info(f"Registered user {user.id}")
        return user
