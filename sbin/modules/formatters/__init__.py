from .formatters import (
    ImageReference,
    human_readable_size,
    image_ref_for_program,
    parse_image_ref,
    registry_base_url,
)
from .tee import Tee
