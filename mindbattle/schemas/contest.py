"""Contest schemas."""
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, conint, constr, model_validator

from mindbattle.models.base import ContestFormat, ContestStatus, Difficulty, TimerType
from mindbattle.schemas.base import BaseSchema, EpochMs, FrozenSchema


class QuizQuestion(BaseSchema):
    question: str
    options: list[str]
    answer: str


class PublicQuizQuestion(BaseSchema):
    """Question as shown to players, without the answer."""
    question: str
    options: list[str]


class ContestResult(BaseSchema):
    """A participant's recorded result. ``score`` is prize money for KBC."""
    user_id: str
    name: str
    score: int
    time: Optional[float] = None  # seconds, Fastest Finger only


class ContestSnapshot(FrozenSchema):
    """Full contest value used by the lifecycle sweep and admin views."""
    id: str
    title: str
    description: str = ""
    category: str
    entry_fee: int = 0
    prize_pool: int = 0
    status: ContestStatus
    registration_start_date: EpochMs
    registration_end_date: EpochMs
    contest_start_date: EpochMs
    max_participants: int
    rules: str = ""
    questions: list[QuizQuestion] = Field(default_factory=list)
    participants: list[str] = Field(default_factory=list)
    format: ContestFormat = ContestFormat.KBC
    timer_type: TimerType = TimerType.PER_QUESTION
    time_per_question: int = 30
    total_contest_time: Optional[int] = None
    number_of_questions: int = 15
    created_by: Optional[str] = None
    results: list[ContestResult] = Field(default_factory=list)
    difficulty: Difficulty = Difficulty.MEDIUM


class PublicContest(ContestSnapshot):
    """Contest listing entry; question answers are withheld."""
    questions: list[PublicQuizQuestion] = Field(default_factory=list)

    @classmethod
    def from_snapshot(cls, snapshot: ContestSnapshot) -> "PublicContest":
        return cls.model_validate(snapshot.model_dump())


class _ContestFields(BaseSchema):
    @model_validator(mode="after")
    def validate_schedule(self):
        reg_start = getattr(self, "registration_start_date", None)
        reg_end = getattr(self, "registration_end_date", None)
        start = getattr(self, "contest_start_date", None)
        if reg_start and reg_end and reg_start > reg_end:
            raise ValueError("Registration must open before it closes")
        if reg_end and start and reg_end > start:
            raise ValueError("Registration must close before the contest starts")
        return self


class ContestCreateRequest(_ContestFields):
    """Payload for creating a contest."""
    title: constr(min_length=1, max_length=200)
    description: str = ""
    category: constr(min_length=1, max_length=100)
    entry_fee: conint(ge=0) = 0
    prize_pool: conint(ge=0) = 0
    status: Optional[ContestStatus] = None
    registration_start_date: EpochMs
    registration_end_date: EpochMs
    contest_start_date: EpochMs
    max_participants: conint(gt=0) = 100
    rules: str = ""
    questions: list[QuizQuestion] = Field(default_factory=list)
    format: ContestFormat = ContestFormat.KBC
    timer_type: TimerType = TimerType.PER_QUESTION
    time_per_question: conint(gt=0) = 30
    total_contest_time: Optional[conint(gt=0)] = None
    number_of_questions: conint(gt=0) = 15
    difficulty: Difficulty = Difficulty.MEDIUM

    @model_validator(mode="after")
    def validate_timer(self):
        if self.timer_type == TimerType.TOTAL_CONTEST and not self.total_contest_time:
            raise ValueError("Total contest time is required for a total-contest timer")
        return self


class ContestUpdateRequest(_ContestFields):
    """Partial contest update; only provided fields change."""
    title: Optional[constr(min_length=1, max_length=200)] = None
    description: Optional[str] = None
    category: Optional[constr(min_length=1, max_length=100)] = None
    entry_fee: Optional[conint(ge=0)] = None
    prize_pool: Optional[conint(ge=0)] = None
    status: Optional[ContestStatus] = None
    registration_start_date: Optional[EpochMs] = None
    registration_end_date: Optional[EpochMs] = None
    contest_start_date: Optional[EpochMs] = None
    max_participants: Optional[conint(gt=0)] = None
    rules: Optional[str] = None
    questions: Optional[list[QuizQuestion]] = None
    format: Optional[ContestFormat] = None
    timer_type: Optional[TimerType] = None
    time_per_question: Optional[conint(gt=0)] = None
    total_contest_time: Optional[conint(gt=0)] = None
    number_of_questions: Optional[conint(gt=0)] = None
    difficulty: Optional[Difficulty] = None


class KBCResults(BaseSchema):
    format: Literal["KBC"]
    score: conint(ge=0)  # Prize money reached on the ladder


class FastestFingerResults(BaseSchema):
    format: Literal["FastestFinger"]
    score: conint(ge=0)
    time: float = Field(ge=0)  # seconds taken


GameResults = Annotated[Union[KBCResults, FastestFingerResults], Field(discriminator="format")]


class LeaderboardEntry(BaseSchema):
    position: int
    user_id: str
    name: str
    score: int
    time: Optional[float] = None


class RegisterForContestResponse(BaseSchema):
    contest: PublicContest
    wallet_balance: int


class SubmitResultsResponse(BaseSchema):
    """``is_win`` and ``points_earned`` stay empty until a Fastest Finger contest is settled."""
    result: ContestResult
    settled: bool
    total_points: int
    rank: str
    wallet_balance: int
    is_win: Optional[bool] = None
    points_earned: Optional[int] = None
