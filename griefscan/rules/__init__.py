"""
Built-in rules, one per vulnerability class. Import order is registration order.
"""
from .base import Match, Rule, rule  # noqa: F401
from . import unbounded_loop  # noqa: F401
from . import reentrancy  # noqa: F401
from . import push_payment  # noqa: F401
from . import unguarded_call  # noqa: F401
from . import storage_growth  # noqa: F401
from . import minimum_amount  # noqa: F401
from . import balance_dependency  # noqa: F401
