# #############################################################################
# argcheck.py
# ===========
# #############################################################################

"""
Helper functions to ease argument checking.
"""

import functools
import inspect
import keyword
from numbers import Integral, Real
from typing import Any, Callable, Container, Mapping, Sequence, \
    Union

import numpy as np

BoolFunc = Callable[[Any], bool]


def check(*args) -> Callable:
    """
    Function decorator: raise :py:exc:`ValueError` when parameter fails
    boolean test(s).

    It is common to check parameters for correctness before executing the
    function/class to which they are bound using boolean functions.
    These boolean functions typically do *not* raise :py:exc:`Exception` when
    something goes wrong.
    :py:func:`check` is a decorator that intercepts the output of such boolean
    functions and raises :py:exc:`ValueError` when the result is
    :py:obj:`False`.

    :param args: several invocation modes possible:

        * 2-argument mode:

            * args[0]: name of decorated function's parameter to test;
            * args[1]: (list of) boolean function(s) to apply to parameter
              value.

        * 1-argument mode: (parameter name -> (list of) boolean function(s))
          mapping.

    :return: the decorated function is invoked if all tests return
        :py:obj:`True`, otherwise :py:exc:`ValueError` is raised.

    Two-arg syntax:

    .. doctest::

       >>> from ripmmarc.util.argcheck import check

       >>> def is_5(x):
       ...     return x == 5

       >>> class A:
       ...     @check('a', is_5)
       ...     def __init__(self, a):
       ...         self.a = a

       >>> A(5).a
       5

       >>> A(4)
       Traceback (most recent call last):
           ...
       ValueError: Parameter[a] of A.__init__() does not satisfy is_5().

    Mapping syntax:

    .. doctest::

       >>> def is_int(x):
       ...     return isinstance(x, int)

       >>> def is_str(x):
       ...     return isinstance(x, str)

       >>> class A:
       ...     @check(dict(a=is_str,
       ...                 b=is_int))
       ...     def __init__(self, a, b):
       ...         self.a = a
       ...         self.b = b

       >>> obj = A('5', 3)
       >>> obj.a, obj.b
       ('5', 3)

       >>> A(5, 3)
       Traceback (most recent call last):
           ...
       ValueError: Parameter[a] of A.__init__() does not satisfy is_str().
    """
    if len(args) == 1:
        return _check(m=args[0])
    elif len(args) == 2:
        return _check(m={args[0]: args[1]})
    else:
        raise ValueError('Expected 1 or 2 arguments.')


def _check(m: Mapping[str, Union[BoolFunc, Sequence[BoolFunc]]]) -> Callable:
    if not isinstance(m, Mapping):
        a = _check.__annotations__['m']
        raise TypeError(f'Expected {a}')

    key_error = lambda k: f'Key[{k}] must be a valid string identifier.'
    value_error = lambda k: (f'Value[Key[{k}]] must be '
                             'Union[{BoolFunc}, Sequence[{BoolFunc}]].')
    for k, v in m.items():
        if not isinstance(k, str):
            raise TypeError(key_error(k))
        if not (k.isidentifier() and (not keyword.iskeyword(k))):
            raise ValueError(key_error(k))

        if isinstance(v, Sequence) and (len(v) == 0):
            raise ValueError(value_error(k))
        for _ in (v if isinstance(v, Sequence) else (v,)):
            if not callable(_):
                raise TypeError(value_error(k))

    def decorator(func: Callable) -> Callable:
        sig = inspect.signature(func)
        for k in m.keys():
            if k not in sig.parameters:
                raise ValueError(f'Parameter[{k}] not part of '
                                 f'{func.__qualname__}() parameter list.')

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            func_args = sig.bind(*args, **kwargs)
            func_args.apply_defaults()

            for k, v in m.items():
                for fn in (v if isinstance(v, Sequence) else (v,)):
                    if fn(func_args.arguments[k]) is False:
                        raise ValueError(f'Parameter[{k}] of '
                                         f'{func.__qualname__}() does not '
                                         f'satisfy {fn.__name__}().')

            return func(*args, **kwargs)

        return wrapper

    return decorator


def accept_any(*funcs) -> BoolFunc:
    """
    Return function to test if it's argument satisfies at least one of the
    boolean functions ``funcs``.

    :param funcs: boolean functions.
    :return: [:py:class:`function`]

    .. doctest::

       >>> from ripmmarc.util.argcheck import accept_any, is_integer, has_integers

       >>> accept_any(is_integer, has_integers)(5)
       True

       >>> accept_any(is_integer, has_integers)([1., 2.])
       False
    """
    if len(funcs) == 0:
        raise ValueError('Expected at least one boolean function.')
    for fn in funcs:
        if not callable(fn):
            raise TypeError('Parameter[funcs] must contain callables.')

    def _accept_any(x):
        for fn in funcs:
            try:
                if fn(x) is True:
                    return True
            except ValueError:
                # Predicate not applicable to this kind of input.
                pass

        return False

    names = ', '.join(fn.__name__ for fn in funcs)
    _accept_any.__name__ = f'accept_any({names})'

    return _accept_any


def require_all(*funcs) -> BoolFunc:
    """
    Return function to test if it's argument satisfies all boolean functions
    ``funcs``.

    Functions are evaluated in order and evaluation stops at the first failure.

    :param funcs: boolean functions.
    :return: [:py:class:`function`]

    .. doctest::

       >>> from ripmmarc.util.argcheck import require_all, has_integers, has_shape

       >>> require_all(has_integers, has_shape([2]))([1, 2])
       True

       >>> require_all(has_integers, has_shape([2]))([1, 2, 3])
       False
    """
    if len(funcs) == 0:
        raise ValueError('Expected at least one boolean function.')
    for fn in funcs:
        if not callable(fn):
            raise TypeError('Parameter[funcs] must contain callables.')

    def _require_all(x):
        for fn in funcs:
            if fn(x) is False:
                return False

        return True

    names = ', '.join(fn.__name__ for fn in funcs)
    _require_all.__name__ = f'require_all({names})'

    return _require_all


def allow_None(func) -> BoolFunc:
    """
    Return function to test if it's argument is :py:obj:`None` or satisfies
    ``func``.

    :param func: boolean function.
    :return: [:py:class:`function`]

    .. doctest::

       >>> from ripmmarc.util.argcheck import allow_None, is_integer

       >>> allow_None(is_integer)(None), allow_None(is_integer)(3)
       (True, True)
    """
    if not callable(func):
        raise TypeError('Parameter[func] must be callable.')

    def _allow_None(x):
        if x is None:
            return True

        return func(x)

    _allow_None.__name__ = f'allow_None({func.__name__})'

    return _allow_None


def is_instance(klass) -> Callable:
    """
    Return function to test if it's argument satisfies one of the type(s)
    ``klass``.

    :param klass: type or list of types.
    :return: [:py:class:`function`]

    .. doctest::

       >>> import numpy as np
       >>> from ripmmarc.util.argcheck import is_instance

       >>> is_instance([str, int])('5')
       True

       >>> is_instance(np.ndarray)([])
       False
    """
    if not (inspect.isclass(klass) or
            (isinstance(klass, Sequence) and
             all(inspect.isclass(_) for _ in klass))):
        raise TypeError('Parameter[klass] must be a class or list of classes')

    klass = (klass,) if inspect.isclass(klass) else tuple(klass)

    def _is_instance(x):
        if isinstance(x, klass):
            return True

        return False

    _is_instance.__name__ = f'is_instance({klass})'

    return _is_instance


def is_scalar(x) -> bool:
    """
    Return :py:obj:`True` if ``x`` is a scalar object.

    :param x: object to test.

    .. doctest::

       >>> from ripmmarc.util.argcheck import is_scalar

       >>> is_scalar(5)
       True

       >>> is_scalar([5])
       False
    """
    return not isinstance(x, Container)


def is_array_like(x) -> bool:
    """
    Return :py:obj:`True` if ``x`` is an array-like object.

    :param x: object to test.

    .. doctest::

       >>> import numpy as np
       >>> from ripmmarc.util.argcheck import is_array_like

       >>> is_array_like(5)
       False

       >>> [is_array_like(_) for _ in (tuple(), [], np.array([]), range(5))]
       [True, True, True, True]

       >>> [is_array_like(_) for _ in (set(), dict())]
       [False, False]
    """
    if isinstance(x, (np.ndarray, Sequence)):
        return True

    return False


@check('x', is_array_like)
def is_array_shape(x) -> bool:
    """
    Return :py:obj:`True` if ``x`` is a valid array shape specifier.

    :param x: shape-like specifier.

    .. doctest::

       >>> from ripmmarc.util.argcheck import is_array_shape

       >>> is_array_shape((5, 4))
       True

       >>> is_array_shape((5, 0))
       False
    """
    x = np.asarray(x)

    if x.ndim == 1:
        if ((len(x) > 0) and
                np.issubdtype(x.dtype, np.integer) and
                np.all(x > 0)):
            return True

    return False


@check('shape', is_array_shape)
def has_shape(shape) -> Callable:
    """
    Return function to test if it's array-like argument has dimensions
    ``shape``.

    :param shape: desired dimensions.
    :return: [:py:class:`function`]

    .. doctest::

       >>> from ripmmarc.util.argcheck import has_shape

       >>> has_shape((1,))([5,])
       True

       >>> has_shape([5,])((1, 2))
       False
    """
    shape = tuple(shape)

    @check('x', is_array_like)
    def _has_shape(x) -> bool:
        x = np.asarray(x)

        if x.shape == shape:
            return True

        return False

    _has_shape.__name__ = f'has_shape({shape})'

    return _has_shape


@check('x', is_scalar)
def is_integer(x) -> bool:
    """
    Return :py:obj:`True` if ``x`` is an integer.

    :param x: object to test.

    .. doctest::

       >>> from ripmmarc.util.argcheck import is_integer

       >>> is_integer(5)
       True

       >>> is_integer(5.0)
       False
    """
    return isinstance(x, Integral) and (not isinstance(x, bool))


@check('x', is_array_like)
def has_integers(x) -> bool:
    """
    Return :py:obj:`True` if ``x`` contains integers.

    :param x: array-like object.

    .. doctest::

       >>> import numpy as np
       >>> from ripmmarc.util.argcheck import has_integers

       >>> has_integers([5]), has_integers(np.r_[:5])
       (True, True)

       >>> has_integers([5.]), has_integers(np.ones((5, 3)))
       (False, False)
    """
    x = np.asarray(x)

    if np.issubdtype(x.dtype, np.integer):
        return True

    return False


@check('x', is_scalar)
def is_boolean(x) -> bool:
    """
    Return :py:obj:`True` if ``x`` is a boolean.

    :param x: object to test.

    .. doctest::

       >>> from ripmmarc.util.argcheck import is_boolean

       >>> is_boolean(True), is_boolean(False)
       (True, True)

       >>> is_boolean(0), is_boolean(1)
       (False, False)
    """
    if isinstance(x, (bool, np.bool_)):
        return True

    return False


@check('x', is_array_like)
def has_booleans(x) -> bool:
    """
    Return :py:obj:`True` if ``x`` contains booleans.

    :param x: array-like object.

    .. doctest::

       >>> import numpy as np
       >>> from ripmmarc.util.argcheck import has_booleans

       >>> has_booleans(np.ones((1, 2), dtype=bool)), has_booleans([True])
       (True, True)

       >>> has_booleans(np.ones((1, 2)))
       False
    """
    x = np.asarray(x)

    if np.issubdtype(x.dtype, np.bool_):
        return True

    return False


@check('x', is_scalar)
def is_real(x) -> bool:
    """
    Return :py:obj:`True` if ``x`` is a real number.

    :param x: object to test.

    .. doctest::

       >>> from ripmmarc.util.argcheck import is_real

       >>> is_real(5), is_real(5.0)
       (True, True)

       >>> is_real(1j)
       False
    """
    return isinstance(x, Real) and (not isinstance(x, bool))


@check('x', is_array_like)
def has_reals(x) -> bool:
    """
    Return :py:obj:`True` if ``x`` contains real numbers.

    :param x: array-like object.

    .. doctest::

       >>> import numpy as np
       >>> from ripmmarc.util.argcheck import has_reals

       >>> has_reals([5]), has_reals(np.arange(10))
       (True, True)

       >>> has_reals(1j * np.ones(5))
       False
    """
    x = np.asarray(x)

    if (np.issubdtype(x.dtype, np.integer) or
            np.issubdtype(x.dtype, np.floating)):
        return True

    return False
