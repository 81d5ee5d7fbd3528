"""
Gallery rebuilds from the sample store.
"""
import logging
import time
from typing import List, Optional, Union

from .adapter import RecognitionAdapter, parse_mode
from .config import Mode, RecognitionConfig, SamplePolicy
from .exceptions import FaceGalleryError, InvalidRequestError, MultipleFacesError
from .gallery import GalleryRegistry
from .models import FAILED, MULTIPLE_FACES, NO_FACE, NOT_USED, TRAINED, RebuildReport, SampleOutcome
from .samples import SampleStore

logger = logging.getLogger(__name__)


def parse_policy(policy: Union[SamplePolicy, str, None]) -> Optional[SamplePolicy]:
    if policy is None or isinstance(policy, SamplePolicy):
        return policy
    try:
        return SamplePolicy(policy)
    except ValueError:
        raise InvalidRequestError(f"Unknown sample policy '{policy}'")


class GalleryBuilder:
    """Regenerates the active gallery from every sample on disk.

    A sample that cannot be embedded is recorded and skipped; only a failure
    to list the store aborts a rebuild, in which case the previous gallery
    stays active.
    """

    def __init__(
        self,
        store: SampleStore,
        adapter: RecognitionAdapter,
        registry: GalleryRegistry,
        config: Optional[RecognitionConfig] = None,
    ):
        self.store = store
        self.adapter = adapter
        self.registry = registry
        self.config = config or RecognitionConfig.from_env()

    def rebuild(
        self,
        mode: Union[Mode, str, None] = None,
        policy: Union[SamplePolicy, str, None] = None,
    ) -> RebuildReport:
        cfg = self.config.with_overrides(mode=parse_mode(mode), sample_policy=parse_policy(policy))

        with self.registry.rebuilding():
            start_time = time.time()
            identities = self.store.list_identities()
            logger.info(
                f"Rebuilding gallery from {len(identities)} identities "
                f"(mode={cfg.mode.value}, policy={cfg.sample_policy.value})"
            )

            descriptors = []
            labels = []
            outcomes: List[SampleOutcome] = []

            for identity, samples in identities:
                found = False
                for path in samples:
                    if found and cfg.sample_policy is SamplePolicy.FIRST:
                        outcomes.append(SampleOutcome(identity, path, NOT_USED))
                        continue

                    try:
                        descriptor = self.adapter.embed_from_file(path, cfg.mode)
                    except MultipleFacesError as e:
                        logger.warning(f"\tskipping {path.name}: {e.message}")
                        outcomes.append(SampleOutcome(identity, path, MULTIPLE_FACES, e.message))
                        continue
                    except FaceGalleryError as e:
                        logger.warning(f"\tskipping {path.name}: {e.message}")
                        outcomes.append(SampleOutcome(identity, path, FAILED, e.message))
                        continue
                    except Exception as e:
                        logger.exception(f"\tfailed on {path.name}: {str(e)}")
                        outcomes.append(SampleOutcome(identity, path, FAILED, str(e)))
                        continue

                    if descriptor is None:
                        logger.warning(f"\tcould not find face on {path.name}")
                        outcomes.append(SampleOutcome(identity, path, NO_FACE))
                        continue

                    logger.info(f"\ttraining {path.name}...")
                    descriptors.append(descriptor)
                    labels.append(identity)
                    outcomes.append(SampleOutcome(identity, path, TRAINED))
                    found = True

            gallery = self.registry.install(descriptors, labels)

        report = RebuildReport(gallery=gallery, outcomes=outcomes)
        logger.info(
            f"Rebuild finished in {time.time() - start_time:.2f}s: "
            f"{len(gallery)} entries, {len(report.skipped)} skipped"
        )
        return report
