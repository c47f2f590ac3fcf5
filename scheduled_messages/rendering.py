"""
Template rendering for scheduled messages.

Templates use Django template syntax rendered as plain text (no autoescape).
Rendering is strict: an unknown tag or filter, a name that is not in the
context, or a missing attribute is a RenderError instead of a blank.
"""
import logging

from django.template import Context, Engine, TemplateSyntaxError
from django.template.base import FilterExpression, Variable, VariableNode
from django.template.defaulttags import FirstOfNode, ForNode, IfChangedNode, IfNode, RegroupNode, WithNode

from schedules.calculator import get_timezone
from .exceptions import RenderError

logger = logging.getLogger(__name__)

INVALID_MARKER = '<<undefined:%s>>'

# names Django puts in every context
CONTEXT_BUILTINS = frozenset({'True', 'False', 'None'})


class StrictUndefined(str):
    """``string_if_invalid`` value that raises instead of rendering a blank."""

    def __mod__(self, name):
        raise RenderError(f"Undefined variable '{name}'", variable=str(name))


def date_helpers(reference, timezone):
    local = reference.astimezone(get_timezone(timezone))
    return {
        'date': local.strftime('%Y-%m-%d'),
        'time': local.strftime('%I:%M %p'),
        'day_of_week': local.strftime('%A'),
        'month': local.strftime('%B'),
        'year': local.year,
    }


class StrictExpression:
    """Wraps a FilterExpression so a failed lookup is never ignored.

    Django resolves the expressions of {% if %}, {% for %}, {% firstof %},
    {% ifchanged %} and {% regroup %} with ``ignore_failures=True``, which
    turns a missing attribute into None instead of an error.
    """

    def __init__(self, expression):
        self.expression = expression

    def resolve(self, context, ignore_failures=False):
        return self.expression.resolve(context, ignore_failures=False)

    def __getattr__(self, name):
        return getattr(self.expression, name)


class StrictCondition:
    """An {% if %} condition with operators.

    Django operators turn any exception into False, so every operand is resolved
    strictly before the operators run.
    """

    def __init__(self, condition, literals):
        self.condition = condition
        self.literals = literals

    def eval(self, context):
        for literal in self.literals:
            literal.value.resolve(context)
        return self.condition.eval(context)


def check_template(nodelist, names):
    """Top-level names the template reads that ``names`` does not provide.

    Lenient expressions in the tree are switched to strict resolution on the way.
    """
    missing = []
    _check_nodelist(nodelist, frozenset(names) | CONTEXT_BUILTINS, missing)
    return missing


def _check_nodelist(nodelist, names, missing):
    names = set(names)
    for node in nodelist:
        _check_node(node, names, missing)
        # {% regroup ... as x %}, {% cycle ... as x %}, {% now ... as x %} and friends
        for attr in ('var_name', 'variable_name', 'asvar'):
            bound = getattr(node, attr, None)
            if isinstance(bound, str) and bound:
                names.add(bound)


def _check_node(node, names, missing):
    if isinstance(node, VariableNode):
        _check_expression(node.filter_expression, names, missing)
    elif isinstance(node, ForNode):
        node.sequence = _strict(node.sequence, names, missing)
        _check_nodelist(node.nodelist_loop, names | set(node.loopvars) | {'forloop'}, missing)
        _check_nodelist(node.nodelist_empty, names, missing)
    elif isinstance(node, IfNode):
        conditions_nodelists = []
        for condition, nodelist in node.conditions_nodelists:
            if condition is not None:
                condition = _strict_condition(condition, names, missing)
            _check_nodelist(nodelist, names, missing)
            conditions_nodelists.append((condition, nodelist))
        node.conditions_nodelists = conditions_nodelists
    elif isinstance(node, WithNode):
        for expression in node.extra_context.values():
            _check_expression(expression, names, missing)
        _check_nodelist(node.nodelist, names | set(node.extra_context), missing)
    elif isinstance(node, FirstOfNode):
        node.vars = [_strict(expression, names, missing) for expression in node.vars]
    elif isinstance(node, RegroupNode):
        node.target = _strict(node.target, names, missing)
        node.expression = StrictExpression(node.expression)
    else:
        if isinstance(node, IfChangedNode):
            node._varlist = [_strict(expression, names, missing) for expression in node._varlist]
        for attr in getattr(node, 'child_nodelists', ()):
            _check_nodelist(getattr(node, attr, None) or [], names, missing)


def _strict_condition(condition, names, missing):
    literals = []
    _collect_literals(condition, literals)
    for literal in literals:
        literal.value = _strict(literal.value, names, missing)
    if len(literals) == 1 and literals[0] is condition:
        return condition
    return StrictCondition(condition, literals)


def _collect_literals(condition, literals):
    if isinstance(getattr(condition, 'value', None), FilterExpression):
        literals.append(condition)
        return
    for side in (getattr(condition, 'first', None), getattr(condition, 'second', None)):
        if side is not None:
            _collect_literals(side, literals)


def _strict(expression, names, missing):
    _check_expression(expression, names, missing)
    return StrictExpression(expression)


def _check_expression(expression, names, missing):
    variables = [expression.var]
    for _func, args in expression.filters:
        variables.extend(value for lookup, value in args if lookup)
    for variable in variables:
        if isinstance(variable, Variable) and variable.lookups:
            name = variable.lookups[0]
            if name not in names and name not in missing:
                missing.append(name)


class TemplateRenderer:
    def __init__(self):
        self.engine = Engine(string_if_invalid=StrictUndefined(INVALID_MARKER), autoescape=False)

    def build_context(self, variables, reference, timezone):
        """Date helpers first, caller variables on top (collisions are logged)."""
        context = date_helpers(reference, timezone)
        for name in sorted(set(context) & set(variables)):
            logger.warning(f"Template variable '{name}' overrides the built-in date helper")
        context.update(variables)
        return context

    def render(self, template, variables=None):
        variables = dict(variables or {})
        try:
            compiled = self.engine.from_string(template)
        except TemplateSyntaxError as e:
            raise RenderError(f'Template error: {e}') from e

        missing = check_template(compiled.nodelist, variables)
        if missing:
            raise RenderError(f"Template error: undefined variable(s): {', '.join(missing)}", variables=missing)

        try:
            output = compiled.render(Context(variables, autoescape=False))
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(f'Template error: {e}') from e

        if INVALID_MARKER.split('%s')[0] in output:
            # Django substitutes string_if_invalid for methods that need arguments
            raise RenderError('Template error: a method that needs arguments was called')
        return output

    def render_message(self, template, variables, reference, timezone):
        return self.render(template, self.build_context(variables, reference, timezone))
