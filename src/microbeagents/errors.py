"""
Exception types raised by microbeagents.
"""


class ConfigurationError(ValueError):
    """
    Invalid parameters detected while building a model or an agent.

    Raised once at construction time (empty speed collections, negative
    rates or diffusivities, dimensionality mismatches, malformed fields),
    never from inside a simulation step.
    """


class NumericDomainError(ArithmeticError):
    """
    A stepping update would need an undefined operation on finite inputs.

    Typical causes are a zero memory or adaptation time, or a sensing noise
    model evaluated with zero radius or zero compound diffusivity. The agent
    being updated keeps the state of its last completed step.
    """
