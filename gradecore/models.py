"""
Data models for questions, test cases and grading results.

Provides type-safe structures for Question, TestCase, TestResult,
SubmissionResult, QuizQuestion, ScoreResult and GraderConfig.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any


DIFFICULTIES = ("easy", "medium", "hard")

# Languages a question may be offered in; only python is executed here.
LANGUAGES = ("javascript", "python")
SUPPORTED_LANGUAGES = ("python",)

DEFAULT_ALLOWED_MODULES = [
    "bisect",
    "collections",
    "functools",
    "heapq",
    "itertools",
    "json",
    "math",
    "operator",
    "re",
    "string",
    "typing",
]


def _pick(data: dict, *keys, default=None):
    """Return the first key present in data (snake_case or camelCase)."""
    for key in keys:
        if key in data:
            return data[key]
    return default


@dataclass(frozen=True)
class Example:
    """Worked example shown to the candidate; never graded."""
    input: str
    output: str
    explanation: str = ""

    @staticmethod
    def from_dict(data: dict) -> 'Example':
        return Example(
            input=str(data.get('input', '')),
            output=str(data.get('output', '')),
            explanation=data.get('explanation', '')
        )


@dataclass(frozen=True)
class TestCase:
    """Represents a single test case for a question."""
    __test__ = False  # not a pytest class

    input: str
    expected_output: str
    description: str = ""
    is_hidden: bool = False

    @staticmethod
    def from_dict(data: dict) -> 'TestCase':
        return TestCase(
            input=str(_pick(data, 'input', default='')),
            expected_output=str(_pick(data, 'expected_output', 'expectedOutput', 'output', default='')),
            description=_pick(data, 'description', default=''),
            is_hidden=bool(_pick(data, 'is_hidden', 'isHidden', default=False))
        )


@dataclass(frozen=True)
class Question:
    """Represents a programming question and its test cases."""
    id: str
    title: str
    description: str
    difficulty: str
    test_cases: List[TestCase]
    template_code: str = ""
    time_limit_ms: int = 0  # 0 = use GraderConfig.default_time_limit_ms
    examples: List[Example] = field(default_factory=list)
    entry_point: Optional[str] = None  # contractual function name, if fixed
    memory_limit_mb: Optional[int] = None  # overrides GraderConfig.memory_limit_mb

    @staticmethod
    def from_dict(data: dict) -> 'Question':
        """Create a Question from a dictionary (snake_case or camelCase keys)."""
        difficulty = data.get('difficulty', 'easy')
        if difficulty not in DIFFICULTIES:
            raise ValueError(f"Unknown difficulty '{difficulty}' for question {data.get('id')}")

        return Question(
            id=data['id'],
            title=data['title'],
            description=data.get('description', ''),
            difficulty=difficulty,
            examples=[Example.from_dict(e) for e in data.get('examples', [])],
            test_cases=[TestCase.from_dict(t) for t in _pick(data, 'test_cases', 'testCases', default=[])],
            template_code=_pick(data, 'template_code', 'templateCode', default=''),
            time_limit_ms=int(_pick(data, 'time_limit_ms', 'timeLimit', default=0)),
            entry_point=_pick(data, 'entry_point', 'entryPoint'),
            memory_limit_mb=_pick(data, 'memory_limit_mb', 'memoryLimitMb')
        )

    def visible_test_cases(self) -> List[TestCase]:
        """Test cases that may be shown to the candidate."""
        return [tc for tc in self.test_cases if not tc.is_hidden]


@dataclass(frozen=True)
class TestResult:
    """
    Outcome of running one test case.

    status is one of "passed", "failed" (wrong answer), "timeout" or
    "runtime_error". stdout holds what the candidate printed; it is
    informational and never compared.
    """
    __test__ = False

    test_case_index: int
    input: str
    expected_output: str
    actual_output: str
    passed: bool
    execution_time_ms: int
    status: str
    error: Optional[str] = None
    is_hidden: bool = False
    stdout: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SubmissionResult:
    """Aggregate of every TestResult produced by one grading pass."""
    question_id: str
    code: str
    language: str
    results: List[TestResult]
    total_passed: int
    total_tests: int
    success: bool
    execution_time_ms: int
    error: Optional[str] = None

    @property
    def could_not_run(self) -> bool:
        """True when a top-level error aborted the whole pass."""
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class QuizQuestion:
    """A declarative (multiple choice / short answer) question."""
    id: str
    correct_answer: str
    points: float = 1

    @staticmethod
    def from_dict(data: dict) -> 'QuizQuestion':
        return QuizQuestion(
            id=data['id'],
            correct_answer=str(_pick(data, 'correct_answer', 'correctAnswer', default='')),
            points=_pick(data, 'points', default=1)
        )


@dataclass(frozen=True)
class ScoreResult:
    """Points earned on a declarative answer set."""
    score: float
    total_points: float
    percentage: int
    passed: bool = False
    passing_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GraderConfig:
    """
    Grader settings owned by the surrounding system.

    Attributes:
        default_time_limit_ms: Time limit for questions that do not set one
        memory_limit_mb: Address-space limit for each sandboxed run (POSIX only)
        passing_score: Percentage a quiz attempt needs to pass
        max_output_chars: Cap on captured candidate stdout per case
        allowed_modules: Modules candidate code may import
        python_executable: Interpreter used for sandboxed runs (None = current)
    """
    default_time_limit_ms: int
    memory_limit_mb: int
    passing_score: float
    max_output_chars: int
    allowed_modules: List[str]
    python_executable: Optional[str] = None

    @staticmethod
    def from_dict(data: dict) -> 'GraderConfig':
        """Create GraderConfig from dictionary."""
        return GraderConfig(
            default_time_limit_ms=int(data.get('default_time_limit_ms', 3000)),
            memory_limit_mb=int(data.get('memory_limit_mb', 512)),
            passing_score=float(data.get('passing_score', 70)),
            max_output_chars=int(data.get('max_output_chars', 10000)),
            allowed_modules=list(data.get('allowed_modules', DEFAULT_ALLOWED_MODULES)),
            python_executable=data.get('python_executable')
        )

    def validate(self) -> tuple[bool, str]:
        """
        Validate configuration consistency.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if self.default_time_limit_ms <= 0:
            return False, "default_time_limit_ms must be positive"

        if self.memory_limit_mb < 64:
            return False, "memory_limit_mb must be at least 64"

        if not 0 <= self.passing_score <= 100:
            return False, "passing_score must be between 0 and 100"

        if self.max_output_chars < 0:
            return False, "max_output_chars must be non-negative"

        bad = [m for m in self.allowed_modules if not isinstance(m, str) or not m.isidentifier()]
        if bad:
            return False, f"Invalid module names in allowed_modules: {bad}"

        return True, ""

    def time_limit_for(self, question: Question) -> int:
        """Time limit in ms for a question, falling back to the default."""
        return question.time_limit_ms if question.time_limit_ms > 0 else self.default_time_limit_ms

    def memory_limit_for(self, question: Question) -> int:
        return question.memory_limit_mb or self.memory_limit_mb

    @staticmethod
    def default() -> 'GraderConfig':
        """Return default configuration."""
        return GraderConfig(
            default_time_limit_ms=3000,
            memory_limit_mb=512,
            passing_score=70.0,
            max_output_chars=10000,
            allowed_modules=list(DEFAULT_ALLOWED_MODULES)
        )
