"""
Data Models for the Sankshep Client

This module contains data classes and enums used throughout the application:
sessions and roles, navigation targets, categories, posts, and the feed
view model handed to the renderer.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple


class Role(Enum):
    """Persisted classification of a user."""
    DOCTOR = "Doctor"
    NON_DOCTOR = "NonDoctor"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Role"]:
        """
        Interpret a persisted role string.

        Returns:
            The matching Role, Role.UNKNOWN for a garbled value, or None when
            nothing is stored.
        """
        if value is None or value == "":
            return None
        for role in (cls.DOCTOR, cls.NON_DOCTOR):
            if value == role.value:
                return role
        return cls.UNKNOWN

    @classmethod
    def from_is_doctor(cls, is_doctor: bool) -> "Role":
        return cls.DOCTOR if is_doctor else cls.NON_DOCTOR


class Screen(Enum):
    """Navigation targets understood by the navigation sink."""
    LOGIN = "Login"
    SIGNUP = "Signup"
    DOCTOR_HOME = "DoctorPage"
    NON_DOCTOR_HOME = "NonDoctorPage"
    SOURCE_VIEWER = "WebViewScreen"
    LOGOUT = "Logout"


class RouteDecision(Enum):
    """Outcome of session resolution."""
    LOGIN = Screen.LOGIN
    DOCTOR_HOME = Screen.DOCTOR_HOME
    NON_DOCTOR_HOME = Screen.NON_DOCTOR_HOME

    @property
    def screen(self) -> Screen:
        return self.value


@dataclass(frozen=True)
class Session:
    """Live authentication state of the current user."""
    signed_in: bool
    user_id: Optional[str] = None
    email: Optional[str] = None
    role: Optional[Role] = None

    def __post_init__(self):
        if self.role is not None and not self.signed_in:
            raise ValueError("A signed-out session cannot carry a role")

    @classmethod
    def signed_out(cls) -> "Session":
        return cls(signed_in=False)

    def with_role(self, role: Optional[Role]) -> "Session":
        return replace(self, role=role)


@dataclass(frozen=True)
class UserProfile:
    """Profile record stored under /users/{uid}."""
    name: str
    email: str
    is_doctor: bool
    phone: Optional[str] = None
    place_of_practice: Optional[str] = None

    def to_record(self) -> dict:
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "isDoctor": self.is_doctor,
            "placeOfPractice": self.place_of_practice if self.is_doctor else None,
        }

    @classmethod
    def from_record(cls, record: dict) -> "UserProfile":
        return cls(
            name=record.get("name") or "",
            email=record.get("email") or "",
            is_doctor=bool(record.get("isDoctor")),
            phone=record.get("phone"),
            place_of_practice=record.get("placeOfPractice"),
        )


@dataclass(frozen=True)
class Category:
    """Publishing API category."""
    id: int
    name: str


@dataclass(frozen=True)
class Post:
    """Normalized post. Title, excerpt and body keep their raw HTML."""
    id: int
    published_at: datetime
    title: str
    excerpt: str
    body: str
    source_tag: Optional[str] = None
    source_url: Optional[str] = None
    media_url: Optional[str] = None


@dataclass(frozen=True)
class PostCard:
    """Render-ready projection of a Post."""
    post_id: int
    title: str
    summary: str
    published_on: date
    source_tag: Optional[str] = None
    source_url: Optional[str] = None
    media_url: Optional[str] = None

    @property
    def has_image(self) -> bool:
        return self.media_url is not None

    @property
    def can_open_source(self) -> bool:
        return bool(self.source_tag and self.source_url)


class FeedStatus(Enum):
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class FeedViewModel:
    """State of one feed screen."""
    status: FeedStatus = FeedStatus.LOADING
    posts: Tuple[Post, ...] = field(default_factory=tuple)
    error_message: Optional[str] = None
    is_refreshing: bool = False
    fade_in_count: int = 0

    @classmethod
    def loading(cls, is_refreshing: bool = False, fade_in_count: int = 0) -> "FeedViewModel":
        return cls(FeedStatus.LOADING, (), None, is_refreshing, fade_in_count)

    @classmethod
    def ready(cls, posts, fade_in_count: int) -> "FeedViewModel":
        return cls(FeedStatus.READY, tuple(posts), None, False, fade_in_count)

    @classmethod
    def failed(cls, message: str, fade_in_count: int = 0) -> "FeedViewModel":
        return cls(FeedStatus.FAILED, (), message, False, fade_in_count)

    @property
    def post_ids(self) -> frozenset:
        return frozenset(post.id for post in self.posts)
