"""Composite properties: one property descriptor assembled from ordered steps.

A composite runs a list of steps, threading a pool of dependency values
from one step to the next. Public names in the pool are update properties
of the owning object; private names start with ``#`` and exist only inside
the composite that produced them.

Each step talks to the engine only through its continuation:

- ``continuation(outputs)``: merge private ``outputs`` into the pool and
  run the next step.
- ``continuation.exit(value)``: stop the whole property pipeline. ``value``
  becomes the property's exposed value.
- ``continuation.raise_output(outputs)``: finish the *current* composite
  right away, handing ``outputs`` to the composite around it, which goes on
  with its own next step.
- ``continuation.raise_output_above(outputs)``: the same, one level up.
  Helpers like raise_output_without_dependency() use it so that the
  composite *calling* them is the one that finishes.

Steps are either a plain ``Step(dependencies, compute)`` or a nested
composite, made by calling a template from template_composite_from().
Dependencies are named by plain strings (pool names) or by tokens:

- ``Input.of(name)``: a value passed to the enclosing template's input
- ``Input.value(x)``: a literal
- ``Input.update_value()``: the owning property's raw update value
- ``Input.myself()``: the owning object

Example::

    cover_art_date = composite_from(
        annotation='Album.cover_art_date',
        update=UpdateSpec(validate=is_date),
        steps=[
            exit_without_contribs(contribs='cover_artist_contribs'),
            expose_update_value_or_continue(),
            expose_dependency(dependency='date'),
        ],
    )
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from hsmusic.contracts import CompositeInputError, DefinitionError, require
from hsmusic.data.cacheable_object import (
    MISSING,
    ExposeSpec,
    PropertyDescriptor,
    PropertyFlags,
    UpdateSpec,
)
from hsmusic.data.validators import is_, is_type
from hsmusic.util.sugar import empty

__all__ = [
    'Composite',
    'CompositeTemplate',
    'Continuation',
    'Continue',
    'Exit',
    'Input',
    'RaiseOutput',
    'RaiseOutputAbove',
    'Step',
    'composite_from',
    'continuation',
    'exit_without_dependency',
    'exit_without_update_value',
    'expose_constant',
    'expose_dependency',
    'expose_dependency_or_continue',
    'expose_update_value_or_continue',
    'fill_missing_list_items',
    'raise_output_without_dependency',
    'template_composite_from',
    'with_properties_from_list',
    'with_result_of_availability_check',
]

logger = logging.getLogger(__name__)


# =============================================================================
# Continuation protocol
# =============================================================================

@dataclass(frozen=True)
class Continue:
    outputs: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Exit:
    value: Any = None


@dataclass(frozen=True)
class RaiseOutput:
    outputs: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RaiseOutputAbove:
    outputs: Mapping[str, Any] = field(default_factory=dict)


StepResult = Union[Continue, Exit, RaiseOutput, RaiseOutputAbove]


class Continuation:
    """Builds the tagged result a step returns to the engine."""

    __slots__ = ()

    def __call__(self, outputs: Optional[Mapping[str, Any]] = None) -> Continue:
        return Continue(dict(outputs or {}))

    def exit(self, value=None) -> Exit:
        return Exit(value)

    def raise_output(self, outputs: Optional[Mapping[str, Any]] = None) -> RaiseOutput:
        return RaiseOutput(dict(outputs or {}))

    def raise_output_above(self, outputs: Optional[Mapping[str, Any]] = None) -> RaiseOutputAbove:
        return RaiseOutputAbove(dict(outputs or {}))


continuation = Continuation()


# =============================================================================
# Inputs and dependency tokens
# =============================================================================

@dataclass(frozen=True)
class InputRef:
    name: str


@dataclass(frozen=True, eq=False)
class InputValue:
    value: Any


@dataclass(frozen=True)
class UpdateValueToken:
    pass


@dataclass(frozen=True)
class MyselfToken:
    pass


@dataclass(frozen=True)
class Input:
    """Declares one input of a composite template.

    Attributes
    ----------
    type : str, optional
        Loose type name checked with is_type() (string, number, boolean,
        function, array, object).
    validate : callable, optional
        Validator returning True or raising.
    accepts_null : bool
        Whether None is an acceptable value.
    default : Any
        Used when the input isn't provided or resolves to None.
    static : str, optional
        ``'value'``: must be given as a literal at template-call time.
        ``'dependency'``: must be given as a dependency name.
    """
    type: Optional[str] = None
    validate: Optional[Callable[[Any], Any]] = None
    accepts_null: bool = False
    default: Any = MISSING
    static: Optional[str] = None

    @staticmethod
    def of(name: str) -> InputRef:
        return InputRef(name)

    @staticmethod
    def value(value) -> InputValue:
        return InputValue(value)

    @staticmethod
    def update_value() -> UpdateValueToken:
        return UpdateValueToken()

    @staticmethod
    def myself() -> MyselfToken:
        return MyselfToken()

    @classmethod
    def static_value(cls, **kwargs) -> "Input":
        return cls(static='value', **kwargs)

    @classmethod
    def static_dependency(cls, **kwargs) -> "Input":
        return cls(static='dependency', **kwargs)


def _is_public_name(token) -> bool:
    return isinstance(token, str) and not token.startswith('#')


# =============================================================================
# Steps, templates, composites
# =============================================================================

@dataclass(frozen=True)
class Step:
    """A plain step: ``compute(continuation, dependencies) -> StepResult``.

    ``dependencies`` is passed as a dict keyed by the tokens listed here.
    """
    dependencies: tuple = ()
    compute: Optional[Callable[[Continuation, dict], StepResult]] = None
    annotation: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "dependencies", tuple(self.dependencies))


class _Frame:
    """Evaluation state for one running composite."""

    __slots__ = ("public", "pool", "inputs", "update_value", "myself")

    def __init__(self, public, inputs, update_value, myself):
        self.public = public
        self.pool = dict(public)
        self.inputs = inputs
        self.update_value = update_value
        self.myself = myself


class CompositeTemplate:
    """A parameterized composite. Call it with inputs to get a step (or descriptor).

    Built by template_composite_from(); see there for parameters.
    """

    def __init__(self, annotation: str,
                 inputs: Mapping[str, Input],
                 outputs,
                 steps: Callable[[], Sequence],
                 update=None,
                 compose: bool = True):
        self.annotation = annotation
        self.inputs = dict(inputs)
        self.outputs = outputs
        self.steps = steps
        self.update = update
        self.compose = compose

        for name, spec in self.inputs.items():
            require(
                isinstance(spec, Input),
                f"{annotation}: input {name!r} should be declared with Input(...)"
            )

    def __call__(self, **provided):
        unknown = set(provided) - set(self.inputs)
        require(
            not unknown,
            f"{self.annotation}: unexpected inputs {', '.join(sorted(unknown))}"
        )

        for name, spec in self.inputs.items():
            if name not in provided:
                require(
                    spec.default is not MISSING or spec.accepts_null,
                    f"{self.annotation}: required input {name!r} not provided"
                )
                continue

            token = provided[name]
            if spec.static == 'value':
                require(
                    not isinstance(token, (str, InputRef, UpdateValueToken, MyselfToken)),
                    f"{self.annotation}: input {name!r} must be a static value"
                )
            elif spec.static == 'dependency':
                require(
                    isinstance(token, str),
                    f"{self.annotation}: input {name!r} must be a dependency name"
                )

        composite = Composite(self, provided)
        if self.compose:
            return composite
        return composite.to_descriptor()

    def __repr__(self):
        return f"<composite template {self.annotation}>"


class Composite:
    """One instantiation of a template: its provided inputs and built steps."""

    def __init__(self, template: CompositeTemplate, provided: Mapping[str, Any],
                 renames: Optional[Mapping[str, str]] = None):
        self.template = template
        self.annotation = template.annotation
        self.provided = dict(provided)
        self.renames = dict(renames or {})
        self.statics = self._get_static_values()

        outputs = template.outputs
        if callable(outputs):
            outputs = outputs(self.statics)
        self.declared_outputs = tuple(outputs or ())
        for name in self.declared_outputs:
            require(
                name.startswith('#'),
                f"{self.annotation}: output {name!r} should be a private name starting with '#'"
            )

        self.steps = list(template.steps())
        for index, step in enumerate(self.steps):
            require(
                isinstance(step, (Step, Composite)),
                f"{self.annotation}: step #{index + 1} is {type(step).__name__}, "
                f"expected a Step or a composite"
            )

    def _get_static_values(self) -> dict:
        statics = {}
        for name, spec in self.template.inputs.items():
            if name in self.provided:
                token = self.provided[name]
                statics[name] = token.value if isinstance(token, InputValue) else token
            elif spec.default is not MISSING:
                statics[name] = spec.default
            else:
                statics[name] = None
        return statics

    def outputs(self, renames: Mapping[str, str]) -> "Composite":
        """Return a copy whose outputs land in the parent under new names."""
        unknown = set(renames) - set(self.declared_outputs)
        require(
            not unknown,
            f"{self.annotation}: can't rename outputs it doesn't declare: {', '.join(sorted(unknown))}"
        )
        return Composite(self.template, self.provided, {**self.renames, **renames})

    def public_dependencies(self) -> set[str]:
        """Every public property name this composite (or any nested step) reads."""
        names = {token for token in self.provided.values() if _is_public_name(token)}

        for step in self.steps:
            if isinstance(step, Composite):
                names |= step.public_dependencies()
            else:
                names |= {token for token in step.dependencies if _is_public_name(token)}

        return names

    # Evaluation

    def _resolve(self, token, frame: _Frame, where: str):
        if isinstance(token, str):
            if token not in frame.pool:
                raise DefinitionError(f"{where}: dependency {token!r} isn't available")
            return frame.pool[token]

        if isinstance(token, InputRef):
            if token.name not in frame.inputs:
                raise DefinitionError(f"{where}: no input named {token.name!r}")
            return frame.inputs[token.name]

        if isinstance(token, InputValue):
            return token.value

        if isinstance(token, UpdateValueToken):
            if frame.update_value is MISSING:
                raise DefinitionError(f"{where}: update value requested, but the property doesn't update")
            return frame.update_value

        if isinstance(token, MyselfToken):
            return frame.myself

        return token

    def _resolve_inputs(self, parent: _Frame) -> dict:
        where = f"{self.annotation} (inputs)"
        values = {}

        for name, spec in self.template.inputs.items():
            if name in self.provided:
                value = self._resolve(self.provided[name], parent, where)
            else:
                value = None

            if value is None and spec.default is not MISSING:
                value = spec.default

            self._check_input(name, spec, value)
            values[name] = value

        return values

    def _check_input(self, name: str, spec: Input, value) -> None:
        if value is None:
            if spec.accepts_null:
                return
            raise CompositeInputError(f"{self.annotation}: input {name!r} is required, got None")

        try:
            if spec.type is not None:
                is_type(value, spec.type)
            if spec.validate is not None:
                result = spec.validate(value)
                if result is not True:
                    raise ValueError(f"validation failed for {value!r}")
        except Exception as exc:
            raise CompositeInputError(f"{self.annotation}: input {name!r}: {exc}") from exc

    def _child_frame(self, parent: _Frame) -> _Frame:
        return _Frame(
            public=parent.public,
            inputs=self._resolve_inputs(parent),
            update_value=parent.update_value,
            myself=parent.myself,
        )

    def _collect_outputs(self, result: StepResult, frame: _Frame) -> dict:
        if isinstance(result, RaiseOutput):
            produced = dict(result.outputs)
            unexpected = set(produced) - set(self.declared_outputs)
            require(
                not unexpected,
                f"{self.annotation}: raised outputs it doesn't declare: {', '.join(sorted(unexpected))}"
            )
        else:
            produced = {name: frame.pool[name] for name in self.declared_outputs if name in frame.pool}

        missing = set(self.declared_outputs) - set(produced)
        require(
            not missing,
            f"{self.annotation}: finished without providing outputs: {', '.join(sorted(missing))}"
        )

        return {self.renames.get(name, name): value for name, value in produced.items()}

    def _evaluate(self, frame: _Frame) -> StepResult:
        for index, step in enumerate(self.steps):
            if isinstance(step, Composite):
                child_frame = step._child_frame(frame)
                result = step._evaluate(child_frame)

                if isinstance(result, Exit):
                    return result
                if isinstance(result, RaiseOutputAbove):
                    return RaiseOutput(result.outputs)

                frame.pool.update(step._collect_outputs(result, child_frame))
                continue

            where = f"{self.annotation} step #{index + 1}"
            if step.annotation:
                where += f" ({step.annotation})"

            dependencies = {token: self._resolve(token, frame, where) for token in step.dependencies}
            result = step.compute(continuation, dependencies)

            if isinstance(result, Continue):
                public = [name for name in result.outputs if not name.startswith('#')]
                require(
                    not public,
                    f"{where}: outputs must be private names starting with '#', got {', '.join(public)}"
                )
                frame.pool.update(result.outputs)
                continue

            if isinstance(result, (Exit, RaiseOutput, RaiseOutputAbove)):
                return result

            raise DefinitionError(
                f"{where}: step returned {result!r}, expected a continuation result"
            )

        return Continue()

    def evaluate(self, dependencies: Mapping[str, Any], update_value=MISSING, myself=None):
        """Run this composite as a whole property and return the exposed value."""
        root = _Frame(public=dependencies, inputs={}, update_value=update_value, myself=myself)
        frame = self._child_frame(root)
        result = self._evaluate(frame)

        if isinstance(result, Exit):
            return result.value

        require(
            not isinstance(result, (RaiseOutput, RaiseOutputAbove)),
            f"{self.annotation}: a property composite can't raise outputs, it has to expose a value"
        )

        if update_value is not MISSING:
            return update_value

        raise DefinitionError(f"{self.annotation}: finished without exposing a value")

    def to_descriptor(self) -> PropertyDescriptor:
        """Package this composite as a descriptor installable on a CacheableObject."""
        update = self.template.update
        if callable(update):
            update = update(self.statics)

        dependencies = tuple(sorted(self.public_dependencies()))

        if update is not None:
            require(
                isinstance(update, UpdateSpec),
                f"{self.annotation}: update should be an UpdateSpec"
            )

            def transform(value, dependencies, myself):
                return self.evaluate(dependencies, update_value=value, myself=myself)

            return PropertyDescriptor(
                flags=PropertyFlags(update=True, expose=True),
                update=update,
                expose=ExposeSpec(dependencies=dependencies, transform=transform, myself=True),
            )

        def compute(dependencies, myself):
            return self.evaluate(dependencies, myself=myself)

        return PropertyDescriptor(
            flags=PropertyFlags(expose=True),
            expose=ExposeSpec(dependencies=dependencies, compute=compute, myself=True),
        )

    def __repr__(self):
        return f"<composite {self.annotation}>"


def template_composite_from(annotation: str,
                            steps: Callable[[], Sequence],
                            inputs: Optional[Mapping[str, Input]] = None,
                            outputs=None,
                            update=None,
                            compose: bool = True) -> CompositeTemplate:
    """Declare a reusable composite.

    Parameters
    ----------
    annotation : str
        Name used in every error message about this composite.
    steps : callable
        Zero-argument function returning the list of steps. Called once per
        instantiation.
    inputs : dict of str to Input, optional
        Declared inputs, referenced inside the steps with ``Input.of(name)``.
    outputs : list of str, or callable, optional
        Private names this composite provides to its parent. A callable
        receives the static input values and returns the list.
    update : UpdateSpec or callable, optional
        Makes the resulting property updatable. A callable receives the
        static input values.
    compose : bool
        True (default): calling the template gives a step for use inside
        other composites. False: calling it gives a PropertyDescriptor.
    """
    return CompositeTemplate(
        annotation=annotation,
        inputs=inputs or {},
        outputs=outputs,
        steps=steps,
        update=update,
        compose=compose,
    )


def composite_from(annotation: str, steps: Sequence,
                   update: Optional[UpdateSpec] = None,
                   compose: bool = False):
    """Assemble steps directly, without inputs.

    Returns a PropertyDescriptor, or a composite step with ``compose=True``.
    """
    steps = list(steps)
    template = CompositeTemplate(
        annotation=annotation,
        inputs={},
        outputs=None,
        steps=lambda: steps,
        update=update,
        compose=compose,
    )
    return template()


# =============================================================================
# Generic steps
# =============================================================================

AVAILABILITY_MODES = ('null', 'empty', 'falsy')
is_availability_mode = is_(*AVAILABILITY_MODES)


def is_available(value, mode: str = 'null') -> bool:
    """Whether ``value`` counts as present under an availability ``mode``.

    null: not None. empty: not None and not zero-length. falsy: truthy.
    """
    if mode == 'null':
        return value is not None
    if mode == 'empty':
        return not empty(value)
    if mode == 'falsy':
        return bool(value)
    raise ValueError(f"Expected mode to be one of {', '.join(AVAILABILITY_MODES)}, got {mode!r}")


_MODE = Input(validate=is_availability_mode, default='null')

with_result_of_availability_check = template_composite_from(
    annotation='with_result_of_availability_check',

    inputs={
        'source': Input(accepts_null=True),
        'mode': _MODE,
    },

    outputs=['#availability'],

    steps=lambda: [
        Step(
            dependencies=[Input.of('source'), Input.of('mode')],
            compute=lambda continuation, d: continuation({
                '#availability': is_available(d[Input.of('source')], d[Input.of('mode')]),
            }),
        ),
    ],
)

expose_dependency = template_composite_from(
    annotation='expose_dependency',

    inputs={
        'dependency': Input(accepts_null=True),
    },

    steps=lambda: [
        Step(
            dependencies=[Input.of('dependency')],
            compute=lambda continuation, d: continuation.exit(d[Input.of('dependency')]),
        ),
    ],
)

expose_constant = template_composite_from(
    annotation='expose_constant',

    inputs={
        'value': Input.static_value(accepts_null=True),
    },

    steps=lambda: [
        Step(
            dependencies=[Input.of('value')],
            compute=lambda continuation, d: continuation.exit(d[Input.of('value')]),
        ),
    ],
)

expose_dependency_or_continue = template_composite_from(
    annotation='expose_dependency_or_continue',

    inputs={
        'dependency': Input(accepts_null=True),
        'mode': _MODE,
    },

    steps=lambda: [
        Step(
            dependencies=[Input.of('dependency'), Input.of('mode')],
            compute=lambda continuation, d: (
                continuation.exit(d[Input.of('dependency')])
                if is_available(d[Input.of('dependency')], d[Input.of('mode')])
                else continuation()
            ),
        ),
    ],
)

expose_update_value_or_continue = template_composite_from(
    annotation='expose_update_value_or_continue',

    inputs={
        'mode': _MODE,
    },

    steps=lambda: [
        Step(
            dependencies=[Input.update_value(), Input.of('mode')],
            compute=lambda continuation, d: (
                continuation.exit(d[Input.update_value()])
                if is_available(d[Input.update_value()], d[Input.of('mode')])
                else continuation()
            ),
        ),
    ],
)

exit_without_dependency = template_composite_from(
    annotation='exit_without_dependency',

    inputs={
        'dependency': Input(accepts_null=True),
        'mode': _MODE,
        'value': Input.static_value(accepts_null=True),
    },

    steps=lambda: [
        Step(
            dependencies=[Input.of('dependency'), Input.of('mode'), Input.of('value')],
            compute=lambda continuation, d: (
                continuation()
                if is_available(d[Input.of('dependency')], d[Input.of('mode')])
                else continuation.exit(d[Input.of('value')])
            ),
        ),
    ],
)

exit_without_update_value = template_composite_from(
    annotation='exit_without_update_value',

    inputs={
        'mode': _MODE,
        'value': Input.static_value(accepts_null=True),
    },

    steps=lambda: [
        Step(
            dependencies=[Input.update_value(), Input.of('mode'), Input.of('value')],
            compute=lambda continuation, d: (
                continuation()
                if is_available(d[Input.update_value()], d[Input.of('mode')])
                else continuation.exit(d[Input.of('value')])
            ),
        ),
    ],
)

raise_output_without_dependency = template_composite_from(
    annotation='raise_output_without_dependency',

    inputs={
        'dependency': Input(accepts_null=True),
        'mode': _MODE,
        'output': Input.static_value(type='object', default={}),
    },

    steps=lambda: [
        Step(
            dependencies=[Input.of('dependency'), Input.of('mode'), Input.of('output')],
            compute=lambda continuation, d: (
                continuation()
                if is_available(d[Input.of('dependency')], d[Input.of('mode')])
                else continuation.raise_output_above(d[Input.of('output')])
            ),
        ),
    ],
)


def _property_of(item, name):
    if item is None:
        return None
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def _compute_properties_from_list(continuation, d):
    items = d[Input.of('list')]
    properties = d[Input.of('properties')]
    prefix = d[Input.of('prefix')]

    return continuation({
        f"{prefix}.{name}": (
            None if items is None else [_property_of(item, name) for item in items]
        )
        for name in properties
    })


with_properties_from_list = template_composite_from(
    annotation='with_properties_from_list',

    inputs={
        'list': Input(type='array', accepts_null=True),
        'properties': Input.static_value(validate=lambda v: is_type(v, 'array')),
        'prefix': Input.static_value(type='string', default='#list'),
    },

    outputs=lambda statics: [
        f"{statics['prefix']}.{name}" for name in statics['properties']
    ],

    steps=lambda: [
        Step(
            dependencies=[Input.of('list'), Input.of('properties'), Input.of('prefix')],
            compute=_compute_properties_from_list,
        ),
    ],
)


def _compute_filled_list(continuation, d):
    items = d[Input.of('list')]
    fill = d[Input.of('fill')]
    name = d[Input.of('name')]

    return continuation({
        name: [fill if item is None else item for item in items],
    })


def _fill_missing_list_items_steps():
    return [
        Step(
            dependencies=[Input.of('list'), Input.of('fill'), Input.of('name')],
            compute=_compute_filled_list,
        ),
    ]


_fill_missing_list_items = template_composite_from(
    annotation='fill_missing_list_items',

    inputs={
        'list': Input.static_dependency(type='array'),
        'fill': Input(accepts_null=True),
        'name': Input.static_value(type='string'),
    },

    outputs=lambda statics: [statics['name']],

    steps=_fill_missing_list_items_steps,
)


def fill_missing_list_items(list: str, fill=None) -> Composite:
    """Replace None items of the private list ``list`` with ``fill``, in the pool.

    The output keeps the list's own name, so later steps see the filled list.
    """
    return _fill_missing_list_items(list=list, fill=fill, name=Input.value(list))
