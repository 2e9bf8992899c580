"""Service worker strategy resolution.

A configured strategy is either one of the built-in templates embedded in the
package or a custom template supplied by the host. Both resolve to the raw,
unsubstituted script text.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .config import CUSTOM_STRATEGY, PwaConfig
from .models import ResolvedTemplate

if TYPE_CHECKING:
    from .resources import FileTemplateProvider, ResourceStore


@dataclass(frozen=True)
class BuiltinStrategy:
    """A strategy shipped as the embedded resource "<name>.js"."""

    name: str

    @property
    def resource_key(self) -> str:
        return f"{self.name}.js"


@dataclass(frozen=True)
class CustomStrategy:
    """A strategy whose template is provided by the host."""

    file_name: str

    @property
    def name(self) -> str:
        return CUSTOM_STRATEGY


# Union type for all strategy selections
StrategySelector = BuiltinStrategy | CustomStrategy


def select_strategy(config: PwaConfig) -> StrategySelector:
    """Map the configured strategy identifier to a selector."""
    if config.strategy == CUSTOM_STRATEGY:
        return CustomStrategy(file_name=config.custom_strategy_file)
    return BuiltinStrategy(name=config.strategy)


def resolve_template(
    selector: StrategySelector,
    resources: "ResourceStore",
    custom_templates: "FileTemplateProvider",
) -> ResolvedTemplate:
    """Return the raw template text for a strategy.

    Args:
        selector: Strategy to resolve.
        resources: Store holding the built-in templates.
        custom_templates: Provider for custom templates.

    Returns:
        The resolved template.

    Raises:
        TemplateNotFoundError: If a custom template cannot be located.
        ResourceNotFoundError: If a built-in template is missing from the package.
    """
    if isinstance(selector, CustomStrategy):
        text = custom_templates.get_template(selector.file_name)
    else:
        text = resources.read(selector.resource_key)
    return ResolvedTemplate(strategy=selector.name, text=text)
