"""
Pydantic schemas for the profile page forms.

The profile page posts one of two forms, distinguished by the hidden
``action`` field. Instead of poking at arbitrary keys of the submitted
form, the payload is parsed into a tagged union:

    ProfileAction = UpdateEmail | ChangePassword

Validation that belongs to the form (email syntax, new == confirm) happens
here, before anything reaches the auth service. The password length policy
is enforced by the auth service itself so administrative paths share it.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, EmailStr, Field, TypeAdapter, ValidationError, model_validator


class UpdateEmail(BaseModel):
    """Form body for ``action=update_profile``."""
    action: Literal["update_profile"]
    email: EmailStr


class ChangePassword(BaseModel):
    """Form body for ``action=change_password``."""
    action: Literal["change_password"]
    current_password: str = Field(min_length=1)
    new_password: str
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self) -> "ChangePassword":
        if self.new_password != self.confirm_password:
            raise ValueError("New passwords do not match")
        return self


ProfileAction = Annotated[
    Union[UpdateEmail, ChangePassword],
    Field(discriminator="action"),
]

_profile_action_adapter: TypeAdapter[ProfileAction] = TypeAdapter(ProfileAction)


class ProfileFormError(ValueError):
    """A profile form that could not be turned into a ProfileAction."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def parse_profile_action(form: dict) -> UpdateEmail | ChangePassword:
    """
    Turn a submitted form into a ProfileAction.

    Raises:
        ProfileFormError: With a message suitable for the profile page.
    """
    try:
        return _profile_action_adapter.validate_python(form)
    except ValidationError as exc:
        raise ProfileFormError(_describe(exc)) from exc


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    error_type = first.get("type", "")
    location = first.get("loc", ())

    if error_type in ("union_tag_invalid", "union_tag_not_found"):
        return "Unknown profile action"
    if "email" in location:
        return "Please enter a valid email address"
    if error_type == "value_error":
        # Custom validator messages arrive as "Value error, <message>"
        return first["msg"].removeprefix("Value error, ")
    if "current_password" in location:
        return "Current password is required"
    return "Please fill in all fields"
