from enum import Enum, auto
from typing import Callable, List, Optional, Tuple
import logging

from wikimark.core.context import RenderContext
from wikimark.features import inline, local_links, media, protected, shortcodes, stats, toc
from wikimark.features.postprocess import annotate_external_links
from wikimark.layouts.frontmatter import strip_frontmatter

logger = logging.getLogger(__name__)

Handler = Callable[[str, RenderContext], str]


class FeatureState(Enum):
    STANDARD = auto()
    EXPERIMENTAL = auto()


class FeatureType(Enum):
    PREPROCESSOR = auto()  # markdown -> markdown, before the core renderer
    POSTPROCESSOR = auto()  # html -> html, after it


class Feature:
    def __init__(self, name: str, handler: Handler, state: FeatureState = FeatureState.STANDARD,
                 feature_type: FeatureType = FeatureType.PREPROCESSOR):
        self.name = name
        self.handler = handler
        self.state = state
        self.type = feature_type

    def __repr__(self):
        return f"Feature({self.name!r}, {self.state.name}, {self.type.name})"


class Pipeline:
    """
    A sequence of steps executed in order, each receiving the output of the
    one before it. A step that raises is logged and skipped; its input is
    carried forward unchanged.
    """
    def __init__(self, name: str):
        self.name = name
        self._steps: List[Tuple[str, Handler]] = []

    def add_step(self, handler: Handler, name: Optional[str] = None):
        self._steps.append((name or getattr(handler, '__name__', 'unknown'), handler))

    def run(self, content: str, ctx: RenderContext) -> str:
        for step_name, step in self._steps:
            try:
                content = step(content, ctx)
            except Exception as e:
                logger.error(f"Pipeline {self.name} step {step_name} failed: {e}", exc_info=True)
        return content

    @property
    def step_names(self) -> List[str]:
        return [name for name, _ in self._steps]

    def __iter__(self):
        return iter(handler for _, handler in self._steps)

    def __len__(self):
        return len(self._steps)


class FeatureManager:
    """Holds registered features in registration order and builds pipelines from them."""
    def __init__(self):
        self._features: List[Feature] = []

    def register(self, feature: Feature):
        existing_idx = next((i for i, f in enumerate(self._features) if f.name == feature.name), -1)
        if existing_idx >= 0:
            self._features[existing_idx] = feature
            logger.warning(f"FeatureManager: Overwrote existing feature '{feature.name}'")
        else:
            self._features.append(feature)

    def get_features_by_type(self, feature_type: FeatureType) -> List[Feature]:
        return [f for f in self._features if f.type == feature_type]

    def build_pipeline(self, feature_type: FeatureType = FeatureType.PREPROCESSOR,
                       enable_experimental: bool = False) -> Pipeline:
        """Experimental features only join the pipeline when asked for."""
        pipeline = Pipeline(feature_type.name.lower())
        for f in self.get_features_by_type(feature_type):
            if f.state == FeatureState.STANDARD or (enable_experimental and f.state == FeatureState.EXPERIMENTAL):
                pipeline.add_step(f.handler, f.name)
        logger.debug(f"Built {pipeline.name} pipeline: {pipeline.step_names}")
        return pipeline


# The order matters: mermaid sources must be hidden before anything else reads
# them, block shortcodes must see unmodified markdown, and superscript and
# subscript run last so they never touch markers the other stages emit.
DEFAULT_PREPROCESSORS: Tuple[Feature, ...] = (
    Feature('frontmatter', strip_frontmatter),
    Feature('mermaid', protected.extract_mermaid_blocks),
    Feature('links', local_links.resolve_links),
    Feature('direction', protected.extract_direction_blocks),
    Feature('mp4', media.transform_mp4),
    Feature('youtube', media.transform_youtube),
    Feature('vimeo', media.transform_vimeo),
    Feature('stats', stats.expand_stats_shortcodes),
    Feature('details', shortcodes.expand_details_blocks),
    Feature('tasklist', shortcodes.convert_task_lists),
    Feature('toc', toc.expand_toc),
    Feature('heading_anchor', shortcodes.add_heading_anchors, FeatureState.EXPERIMENTAL),
    Feature('highlight', inline.apply_highlight),
    Feature('typography', inline.apply_typography),
    Feature('emoji', inline.apply_emoji),
    Feature('superscript', inline.apply_superscript),
    Feature('subscript', inline.apply_subscript),
)

# Links are annotated before blocks are restored: re-serializing the tree
# would escape restored mermaid source.
DEFAULT_POSTPROCESSORS: Tuple[Feature, ...] = (
    Feature('external_links', annotate_external_links, feature_type=FeatureType.POSTPROCESSOR),
    Feature('restore', protected.restore_protected_blocks, feature_type=FeatureType.POSTPROCESSOR),
)


def build_feature_manager() -> FeatureManager:
    manager = FeatureManager()
    for feature in DEFAULT_PREPROCESSORS + DEFAULT_POSTPROCESSORS:
        manager.register(feature)
    return manager


def build_default_chain(enable_experimental: bool = False) -> Pipeline:
    return build_feature_manager().build_pipeline(FeatureType.PREPROCESSOR, enable_experimental)


def build_postprocessors() -> Pipeline:
    return build_feature_manager().build_pipeline(FeatureType.POSTPROCESSOR)
