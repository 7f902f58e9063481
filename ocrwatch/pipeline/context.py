from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from ocrwatch.ledger.models import ProcessingRecord


@dataclass(slots=True)
class PipelineContext:
    image_path: Path
    record: ProcessingRecord | None = None
    ocr_text: str | None = None
    llm_result: str | None = None
    finished: bool = False

    @property
    def file_name(self) -> str:
        return self.image_path.name


class PipelineStep(ABC):
    @abstractmethod
    async def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
