"""Shape evaluation of glyphs.

This module defines the query surface through which shape knowledge
enters the recognition process. The same evaluator answers three kinds
of queries:

- ``evaluate``: the sorted sequence of best evaluations, under optional
  conditions and a shape predicate;
- ``raw_vote``: the best evaluation among allowed shapes, without any
  structural check, for cheap screening;
- ``vote``: the best evaluation under the ALLOWED and CHECKED conditions
  by default.

``GlyphNetwork`` is the evaluator shared by the whole process. Its trained
model is loaded once, lazily, on first use and is read-only afterwards,
so concurrent system tasks can query it without locking.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Collection
from pathlib import Path

from glyph_omr.checkers import ShapeChecker, default_checker
from glyph_omr.models import (
    ALL_CONDITIONS,
    NO_CONDITIONS,
    ClassifierParams,
    Condition,
    Evaluation,
    Glyph,
    Shape,
)
from glyph_omr.scale import Scale
from glyph_omr.shape_model import ShapeModel, glyph_features
from glyph_omr.system import System

logger = logging.getLogger(__name__)

ShapePredicate = Callable[[Shape], bool]

# Minimum grade value meaning that any grade is acceptable
NO_MIN_GRADE = 0.0

DEFAULT_MODEL_PATH = Path(__file__).parent / "data" / "shape_model.json"


class ShapeEvaluator(ABC):
    """Base class for glyph shape evaluators.

    Subclasses only provide the natural evaluations of a glyph, one per
    shape they know about. Filtering by grade, conditions and predicate,
    sorting and noise handling are done here.

    Attributes:
        params: Classifier parameters.
        checker: Structural checks used for the CHECKED condition.
    """

    def __init__(
        self,
        name: str,
        params: ClassifierParams | None = None,
        checker: ShapeChecker | None = None,
    ):
        self._name = name
        self.params = params if params is not None else ClassifierParams()
        self.checker = checker if checker is not None else default_checker()

    @property
    def name(self) -> str:
        """Declared name of this evaluator."""
        return self._name

    def get_name(self) -> str:
        return self._name

    @abstractmethod
    def natural_evaluations(self, glyph: Glyph) -> list[Evaluation]:
        """Evaluate the glyph against every known shape, with no filtering.

        Args:
            glyph: A glyph big enough not to be noise.

        Returns:
            One evaluation per known shape, in any order.
        """

    def prepare(self) -> None:
        """Acquire whatever the evaluator needs before serving queries."""

    def is_big_enough(self, glyph: Glyph) -> bool:
        """Tell whether the glyph weight makes it a real glyph rather than noise."""
        weight = Scale(glyph.interline).to_square_interline(glyph.weight)
        return weight >= self.params.min_weight

    def evaluate(
        self,
        glyph: Glyph,
        system: System | None,
        count: int,
        min_grade: float,
        conditions: Collection[Condition] = NO_CONDITIONS,
        predicate: ShapePredicate | None = None,
    ) -> list[Evaluation]:
        """Report the sorted sequence of best evaluations of the glyph.

        Args:
            glyph: The glyph to evaluate.
            system: The system containing the glyph, used by structural checks.
            count: Maximum length of the returned sequence.
            min_grade: Minimum grade for an evaluation to be acceptable.
            conditions: Conditions every returned shape must satisfy.
            predicate: Filter on acceptable shapes, None to accept all.

        Returns:
            At most ``count`` evaluations, by decreasing grade then shape
            declaration order. Empty if none qualifies.
        """
        if count <= 0:
            return []

        if self.is_big_enough(glyph):
            candidates = sorted(self.natural_evaluations(glyph), key=Evaluation.sort_key)
        else:
            candidates = [Evaluation(shape=Shape.NOISE, grade=1.0)]

        allowed = Condition.ALLOWED in conditions
        checked = Condition.CHECKED in conditions
        selected: list[Evaluation] = []

        for evaluation in candidates:
            if evaluation.grade < min_grade:
                break
            if predicate is not None and not predicate(evaluation.shape):
                continue
            if allowed and evaluation.shape in glyph.forbidden_shapes:
                continue
            if checked:
                evaluation = self.checker.annotate(system, glyph, evaluation)
                if evaluation.failure is not None:
                    logger.debug(f"{glyph} rejected {evaluation}")
                    continue

            selected.append(evaluation)
            if len(selected) >= count:
                break

        return selected

    def raw_vote(
        self,
        glyph: Glyph,
        min_grade: float,
        predicate: ShapePredicate | None = None,
    ) -> Evaluation | None:
        """Report the best evaluation among allowed shapes, with no structural check.

        Returns:
            The best acceptable evaluation, or None.
        """
        evaluations = self.evaluate(
            glyph, None, 1, min_grade, frozenset({Condition.ALLOWED}), predicate
        )
        return evaluations[0] if evaluations else None

    def vote(
        self,
        glyph: Glyph,
        system: System | None,
        min_grade: float,
        conditions: Collection[Condition] | None = None,
        predicate: ShapePredicate | None = None,
    ) -> Evaluation | None:
        """Report the best evaluation of the glyph.

        Args:
            glyph: The glyph to evaluate.
            system: The system containing the glyph.
            min_grade: Minimum grade for an evaluation to be acceptable.
            conditions: Conditions to satisfy, None meaning ALLOWED and CHECKED.
            predicate: Filter on acceptable shapes, None to accept all.

        Returns:
            The best acceptable evaluation, or None.
        """
        if conditions is None:
            conditions = ALL_CONDITIONS
        evaluations = self.evaluate(glyph, system, 1, min_grade, conditions, predicate)
        return evaluations[0] if evaluations else None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._name!r})"


class GlyphNetwork(ShapeEvaluator):
    """Process-wide evaluator backed by the trained shape model.

    The model is loaded on first use only. A load failure is raised to the
    caller every time, there is no fallback model.
    """

    _instance: "GlyphNetwork | None" = None
    _instance_lock = threading.Lock()

    def __init__(
        self,
        params: ClassifierParams | None = None,
        checker: ShapeChecker | None = None,
        model: ShapeModel | None = None,
    ):
        super().__init__("GlyphNetwork", params, checker)
        self.model_path = Path(self.params.model_path or DEFAULT_MODEL_PATH)
        self._model = model
        self._model_lock = threading.Lock()

    @classmethod
    def get_instance(cls, params: ClassifierParams | None = None) -> "GlyphNetwork":
        """Return the shared instance, creating it on first call.

        Parameters are only taken into account by the call that creates
        the instance.
        """
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls(params)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Forget the shared instance, the next ``get_instance`` builds a new one."""
        with cls._instance_lock:
            cls._instance = None

    @property
    def model(self) -> ShapeModel:
        """The trained model, loaded on first access.

        Raises:
            ModelLoadError: If the model file cannot be loaded.
        """
        if self._model is None:
            with self._model_lock:
                if self._model is None:
                    logger.debug(f"Loading shape model from {self.model_path}")
                    self._model = ShapeModel.load(self.model_path)
        return self._model

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def prepare(self) -> None:
        """Load the model now, so that a load failure surfaces before any query."""
        _ = self.model

    def natural_evaluations(self, glyph: Glyph) -> list[Evaluation]:
        model = self.model
        grades = model.grades(glyph_features(glyph))
        return [
            Evaluation(shape=shape, grade=min(1.0, max(0.0, float(grade))))
            for shape, grade in zip(model.shapes, grades)
        ]
