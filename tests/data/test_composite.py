"""Tests for the composite step engine and generic steps."""

import pytest

pytestmark = pytest.mark.unit

from hsmusic.contracts import CompositeInputError, DefinitionError
from hsmusic.data.cacheable_object import (
    MISSING,
    CacheableObject,
    PropertyDescriptor,
    PropertyFlags,
    UpdateSpec,
)
from hsmusic.data.composite import (
    Input,
    Step,
    composite_from,
    exit_without_dependency,
    exit_without_update_value,
    expose_constant,
    expose_dependency,
    expose_dependency_or_continue,
    expose_update_value_or_continue,
    fill_missing_list_items,
    is_available,
    raise_output_without_dependency,
    template_composite_from,
    with_properties_from_list,
    with_result_of_availability_check,
)


def updating():
    return PropertyDescriptor(flags=PropertyFlags(update=True, expose=True), update=UpdateSpec())


def make_subject(**descriptors):
    """A CacheableObject with update properties a and b plus ``descriptors``."""
    cls = type('Subject', (CacheableObject,), {
        'property_descriptors': {'a': updating(), 'b': updating(), **descriptors},
    })
    return cls()


def _explode(continuation, d):
    raise AssertionError("step after raise_output ran")


with_early_raise = template_composite_from(
    annotation='with_early_raise',

    outputs=['#x'],

    steps=lambda: [
        Step(compute=lambda continuation, d: continuation.raise_output({'#x': 'raised'})),
        Step(compute=_explode),
    ],
)

echo = template_composite_from(
    annotation='echo',

    inputs={
        'value': Input(type='number'),
    },

    steps=lambda: [
        Step(
            dependencies=[Input.of('value')],
            compute=lambda continuation, d: continuation.exit(d[Input.of('value')]),
        ),
    ],
)

_KNOWN_NAMES = {'showtime': True}

echo_known_name = template_composite_from(
    annotation='echo_known_name',

    inputs={
        'value': Input(type='string', validate=lambda value: _KNOWN_NAMES[value]),
    },

    steps=lambda: [
        Step(
            dependencies=[Input.of('value')],
            compute=lambda continuation, d: continuation.exit(d[Input.of('value')]),
        ),
    ],
)

echo_with_default = template_composite_from(
    annotation='echo_with_default',

    inputs={
        'value': Input(type='number', default=10),
    },

    steps=lambda: [
        Step(
            dependencies=[Input.of('value')],
            compute=lambda continuation, d: continuation.exit(d[Input.of('value')]),
        ),
    ],
)

with_b_or_default = template_composite_from(
    annotation='with_b_or_default',

    outputs=['#b'],

    steps=lambda: [
        raise_output_without_dependency(
            dependency='b',
            output=Input.value({'#b': 'default'}),
        ),

        Step(
            dependencies=['b'],
            compute=lambda continuation, d: continuation({'#b': d['b']}),
        ),
    ],
)


class TestAssembly:
    """Test descriptor construction from steps."""

    def test_expose_only_descriptor(self):
        """Without update, a composite is a compute descriptor."""
        descriptor = composite_from(
            annotation='first',
            steps=[expose_dependency(dependency='a')],
        )

        assert descriptor.flags == PropertyFlags(expose=True)
        assert descriptor.expose.compute is not None
        assert descriptor.expose.myself is True

    def test_hybrid_descriptor(self):
        """With update, a composite is a transform descriptor."""
        update = UpdateSpec()
        descriptor = composite_from(
            annotation='hybrid',
            update=update,
            steps=[expose_update_value_or_continue()],
        )

        assert descriptor.flags == PropertyFlags(update=True, expose=True)
        assert descriptor.update is update
        assert descriptor.expose.transform is not None

    def test_dependencies_are_collected_from_nested_steps(self):
        """Public names from every step and input end up as dependencies."""
        descriptor = composite_from(
            annotation='first_available',
            steps=[
                expose_dependency_or_continue(dependency='b'),
                with_b_or_default(),
                expose_dependency_or_continue(dependency='a'),
                expose_dependency(dependency='#b'),
            ],
        )

        assert descriptor.expose.dependencies == ('a', 'b')

    def test_compose_returns_step(self):
        """composite_from(compose=True) gives a step, not a descriptor."""
        step = composite_from(
            annotation='inner',
            compose=True,
            steps=[expose_dependency(dependency='a')],
        )

        assert not isinstance(step, PropertyDescriptor)
        assert step.public_dependencies() == {'a'}


class TestEvaluation:
    """Test running steps in order."""

    def test_first_exit_wins(self):
        """Steps run in order until one exits."""
        obj = make_subject(first=composite_from(
            annotation='first',
            steps=[
                expose_dependency_or_continue(dependency='a'),
                expose_dependency_or_continue(dependency='b'),
                expose_constant(value=Input.value('neither')),
            ],
        ))

        assert obj.first == 'neither'
        obj.b = 'bee'
        assert obj.first == 'bee'
        obj.a = 'ay'
        assert obj.first == 'ay'

    def test_hybrid_exposes_update_value_on_completion(self):
        """An updating composite that doesn't exit exposes its own value."""
        obj = make_subject(value=composite_from(
            annotation='value',
            update=UpdateSpec(),
            steps=[exit_without_dependency(dependency='a')],
        ))

        obj.value = 'own'
        assert obj.value is None

        obj.a = 'present'
        assert obj.value == 'own'

    def test_expose_only_completion_is_definition_error(self):
        """A non-updating composite must exit with a value."""
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[expose_dependency_or_continue(dependency='a')],
        ))

        with pytest.raises(DefinitionError, match="without exposing a value"):
            obj.value

    def test_exit_without_update_value(self):
        """A missing update value exits with the given default."""
        obj = make_subject(value=composite_from(
            annotation='value',
            update=UpdateSpec(),
            steps=[exit_without_update_value(value=Input.value('unset'))],
        ))

        assert obj.value == 'unset'
        obj.value = 'set'
        assert obj.value == 'set'

    def test_myself_token(self):
        """Input.myself() resolves to the owning object."""
        obj = make_subject(me=composite_from(
            annotation='me',
            steps=[
                Step(
                    dependencies=[Input.myself()],
                    compute=lambda continuation, d: continuation.exit(d[Input.myself()]),
                ),
            ],
        ))

        assert obj.me is obj

    def test_cached_until_dependency_changes(self):
        """Composite properties are cached like any other exposed property."""
        calls = []

        def compute(continuation, d):
            calls.append(d['a'])
            return continuation.exit(d['a'])

        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[Step(dependencies=['a'], compute=compute)],
        ))

        obj.a = 1
        assert obj.value == 1
        assert obj.value == 1
        obj.b = 2
        assert obj.value == 1
        assert calls == [1]


class TestRaiseOutput:
    """Test raise_output: ends the current composite, not the pipeline."""

    def test_raise_skips_rest_of_nested_composite(self):
        """Raised outputs reach the parent and the parent keeps going."""
        obj = make_subject(raised=composite_from(
            annotation='raised',
            steps=[
                with_early_raise(),
                expose_dependency(dependency='#x'),
            ],
        ))

        assert obj.raised == 'raised'

    def test_raise_output_above_ends_calling_composite(self):
        """raise_output_without_dependency finishes the composite calling it."""
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[
                with_b_or_default(),
                expose_dependency(dependency='#b'),
            ],
        ))

        assert obj.value == 'default'
        obj.b = 'bee'
        assert obj.value == 'bee'

    def test_raise_from_top_level_is_definition_error(self):
        """A property composite has nowhere to raise outputs to."""
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[Step(compute=lambda continuation, d: continuation.raise_output({}))],
        ))

        with pytest.raises(DefinitionError, match="can't raise outputs"):
            obj.value

    def test_undeclared_raised_output_is_definition_error(self):
        """Raised outputs must be declared by the composite."""
        loose = template_composite_from(
            annotation='loose',
            outputs=['#x'],
            steps=lambda: [
                Step(compute=lambda continuation, d: continuation.raise_output({'#y': 1})),
            ],
        )
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[loose(), expose_constant(value=Input.value(1))],
        ))

        with pytest.raises(DefinitionError, match="doesn't declare"):
            obj.value


class TestOutputs:
    """Test declared outputs and renaming."""

    def test_outputs_can_be_renamed(self):
        """.outputs() publishes under a new name in the parent."""
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[
                with_early_raise().outputs({'#x': '#renamed'}),
                expose_dependency(dependency='#renamed'),
            ],
        ))

        assert obj.value == 'raised'

    def test_renamed_output_hides_old_name(self):
        """After renaming, the old name isn't in the parent pool."""
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[
                with_early_raise().outputs({'#x': '#renamed'}),
                expose_dependency(dependency='#x'),
            ],
        ))

        with pytest.raises(DefinitionError, match="isn't available"):
            obj.value

    def test_renaming_undeclared_output_is_definition_error(self):
        """Only declared outputs can be renamed."""
        with pytest.raises(DefinitionError, match="doesn't declare"):
            with_early_raise().outputs({'#nope': '#renamed'})

    def test_missing_declared_output_is_definition_error(self):
        """A composite must provide every output it declares."""
        lazy = template_composite_from(
            annotation='lazy',
            outputs=['#x'],
            steps=lambda: [Step(compute=lambda continuation, d: continuation())],
        )
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[lazy(), expose_dependency(dependency='#x')],
        ))

        with pytest.raises(DefinitionError, match="without providing outputs: #x"):
            obj.value

    def test_outputs_must_be_private(self):
        """Steps can't publish public names."""
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[
                Step(compute=lambda continuation, d: continuation({'public': 1})),
                expose_constant(value=Input.value(1)),
            ],
        ))

        with pytest.raises(DefinitionError, match="private names"):
            obj.value

    def test_nested_composite_cant_see_parent_privates(self):
        """Private names don't leak into nested composites."""
        peek = template_composite_from(
            annotation='peek',
            steps=lambda: [
                Step(
                    dependencies=['#secret'],
                    compute=lambda continuation, d: continuation.exit(d['#secret']),
                ),
            ],
        )
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[
                Step(compute=lambda continuation, d: continuation({'#secret': 1})),
                peek(),
            ],
        ))

        with pytest.raises(DefinitionError, match="'#secret' isn't available"):
            obj.value

    def test_non_result_is_definition_error(self):
        """Steps must return a continuation result."""
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[Step(compute=lambda continuation, d: 5)],
        ))

        with pytest.raises(DefinitionError, match="expected a continuation result"):
            obj.value


class TestInputs:
    """Test template inputs."""

    def test_input_value_is_passed_through(self):
        """Inputs resolve dependency names to their values."""
        obj = make_subject(value=composite_from(annotation='value', steps=[echo(value='a')]))

        obj.a = 3
        assert obj.value == 3

    def test_null_input_is_rejected(self):
        """Inputs refuse None unless they accept null."""
        obj = make_subject(value=composite_from(annotation='value', steps=[echo(value='a')]))

        with pytest.raises(CompositeInputError, match="'value' is required"):
            obj.value

    def test_wrongly_typed_input_is_rejected(self):
        """Input types are checked at evaluation."""
        obj = make_subject(value=composite_from(annotation='value', steps=[echo(value='a')]))

        obj.a = 'three'
        with pytest.raises(CompositeInputError, match="Expected number"):
            obj.value

    def test_validator_errors_are_wrapped(self):
        """Any error from an input validator surfaces as a CompositeInputError."""
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[echo_known_name(value='a')],
        ))

        obj.a = 'showtime'
        assert obj.value == 'showtime'

        obj.a = 'harlequin'
        with pytest.raises(CompositeInputError, match="echo_known_name: input 'value'") as excinfo:
            obj.value
        assert isinstance(excinfo.value.__cause__, KeyError)

    def test_default_replaces_null(self):
        """An input's default stands in for None."""
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[echo_with_default(value='a')],
        ))

        assert obj.value == 10
        obj.a = 4
        assert obj.value == 4

    def test_literal_input(self):
        """Input.value() passes a literal."""
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[echo(value=Input.value(7))],
        ))

        assert obj.value == 7

    def test_unknown_input_is_definition_error(self):
        """Templates reject inputs they don't declare."""
        with pytest.raises(DefinitionError, match="unexpected inputs nope"):
            echo(value='a', nope=1)

    def test_missing_required_input_is_definition_error(self):
        """Templates require inputs without defaults."""
        with pytest.raises(DefinitionError, match="required input 'value' not provided"):
            echo()

    def test_static_value_rejects_dependency_name(self):
        """A static value can't be given as a dependency name."""
        with pytest.raises(DefinitionError, match="must be a static value"):
            expose_constant(value='text')

    def test_update_value_requires_updating_property(self):
        """Input.update_value() only works in updating composites."""
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[
                expose_update_value_or_continue(),
                expose_constant(value=Input.value(1)),
            ],
        ))

        with pytest.raises(DefinitionError, match="doesn't update"):
            obj.value


class TestGenericSteps:
    """Test availability checks and list helpers."""

    @pytest.mark.parametrize("value, mode, expected", [
        (None, 'null', False),
        (0, 'null', True),
        ([], 'null', True),
        ([], 'empty', False),
        ('', 'empty', False),
        ([1], 'empty', True),
        (5, 'empty', True),
        (0, 'falsy', False),
        ('x', 'falsy', True),
    ])
    def test_is_available(self, value, mode, expected):
        """Availability modes treat absent values differently."""
        assert is_available(value, mode) is expected

    def test_is_available_rejects_unknown_mode(self):
        """Only null, empty and falsy are modes."""
        with pytest.raises(ValueError):
            is_available(1, 'sometimes')

    def test_with_result_of_availability_check(self):
        """The availability result is published as #availability."""
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[
                with_result_of_availability_check(source='a', mode=Input.value('empty')),
                expose_dependency(dependency='#availability'),
            ],
        ))

        obj.a = []
        assert obj.value is False
        obj.a = [1]
        assert obj.value is True

    def test_properties_from_list_and_fill(self):
        """List items split into per-property lists; holes can be filled."""
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[
                with_properties_from_list(list='a', properties=Input.value(['who', 'what'])),
                fill_missing_list_items(list='#list.what', fill=Input.value('-')),
                Step(
                    dependencies=['#list.who', '#list.what'],
                    compute=lambda continuation, d: continuation.exit(
                        list(zip(d['#list.who'], d['#list.what']))),
                ),
            ],
        ))

        obj.a = [{'who': 'x', 'what': None}, {'who': 'y', 'what': 'bass'}]
        assert obj.value == [('x', '-'), ('y', 'bass')]

    def test_fill_from_dependency(self):
        """fill_missing_list_items can fill from a property."""
        obj = make_subject(value=composite_from(
            annotation='value',
            steps=[
                with_properties_from_list(
                    list='a',
                    properties=Input.value(['color']),
                    prefix=Input.value('#sections'),
                ),
                fill_missing_list_items(list='#sections.color', fill='b'),
                expose_dependency(dependency='#sections.color'),
            ],
        ))

        obj.b = '#abcdef'
        obj.a = [{'color': None}, {'color': '#123456'}]
        assert obj.value == ['#abcdef', '#123456']
