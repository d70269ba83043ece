"""Base Box: Würfel mit Kantenlänge `width` als erstes Feature."""

from loguru import logger

from extensions.base import (
    Extension,
    ExtensionCategory,
    ExtensionManifest,
    PropertyType,
    Tool,
    ToolMetadata,
    UiProperty,
)


def create(code_manager, params):
    width = params["width"]
    return code_manager.add_feature("makeBaseBox", None, [width, width, width])


def _on_register():
    logger.info("Base Box registered")


extension = Extension(
    manifest=ExtensionManifest(
        id="base-box",
        name="Base Box",
        version="1.0.0",
        description="Creates a cube as base feature",
        author="ParaCore",
        icon="Box",
        category=ExtensionCategory.PRIMITIVE,
    ),
    tool=Tool(
        metadata=ToolMetadata(
            id="base-box",
            label="Base Box",
            icon="Box",
            category=ExtensionCategory.PRIMITIVE,
        ),
        ui_properties=(
            UiProperty(
                key="width",
                label="Width",
                type=PropertyType.NUMBER,
                default=10,
                unit="mm",
                min=0,
            ),
        ),
        create=create,
    ),
    on_register=_on_register,
)
