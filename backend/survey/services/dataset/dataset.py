from __future__ import annotations

from collections.abc import Iterable, Iterator

from survey.models.dataset import DatasetInfo
from survey.models.sample import Sample


class Dataset:
    """Read-only sample set, built once at startup.

    Samples are held in a tuple and every one already carries its content
    hash, so the object can be shared across requests without copying.
    """

    def __init__(
        self,
        name: str,
        samples: Iterable[Sample] = (),
        source: str = "empty",
        parquet_supported: bool = False,
    ) -> None:
        self.name = name
        self.source = source
        self.parquet_supported = parquet_supported
        self._samples: tuple[Sample, ...] = tuple(samples)

    def __len__(self) -> int:
        return len(self._samples)

    def __getitem__(self, index: int) -> Sample:
        return self._samples[index]

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    def info(self) -> DatasetInfo:
        return DatasetInfo(
            name=self.name,
            totalSamples=len(self._samples),
            formatSupport={"json": True, "parquet": self.parquet_supported},
        )
