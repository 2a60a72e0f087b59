"""
Knowledge Base

Course transcripts split into overlapping chunks and indexed with BM25
for LUZ IA context retrieval.
"""

import math
import re
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger

CHUNK_SIZE = 1000
CHUNK_OVERLAP = 200
DEFAULT_TOP_K = 4
SUPPORTED_EXTENSIONS = {".txt", ".md"}

FALLBACK_DOCUMENTS = [
    "O curso Jornada Mente Merecedora trabalha com a reprogramação da mente "
    "subconsciente para atrair abundância.",
    "A técnica do estado Alpha permite acessar o subconsciente para reprogramação mental.",
    "O Protocolo Chave Mestra é um conjunto de práticas diárias para manifestação consciente.",
    "A vibração financeira é determinada por nossas crenças inconscientes sobre dinheiro.",
]

NO_CONTEXT = "Base de conhecimento não disponível."


def split_text(text: str, chunk_size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP) -> list[str]:
    """
    Split text into chunks of at most ``chunk_size`` characters.

    Consecutive chunks share up to ``overlap`` characters. Breaks prefer
    paragraph, line and word boundaries inside the window.
    """
    if overlap >= chunk_size:
        raise ValueError("overlap must be smaller than chunk_size")

    text = text.strip()
    if not text:
        return []
    if len(text) <= chunk_size:
        return [text]

    chunks = []
    start = 0
    while start < len(text):
        end = min(start + chunk_size, len(text))

        if end < len(text):
            window = text[start:end]
            for separator in ("\n\n", "\n", " "):
                cut = window.rfind(separator)
                if cut > overlap:
                    end = start + cut
                    break

        chunk = text[start:end].strip()
        if chunk:
            chunks.append(chunk)

        if end >= len(text):
            break
        start = max(end - overlap, start + 1)

    return chunks


TOKEN_PATTERN = re.compile(r"\w{2,}")


def tokenize(text: str) -> list[str]:
    """Lower-case word tokens of two or more characters."""
    return TOKEN_PATTERN.findall(text.lower())


class BM25Index:
    """
    Okapi BM25 over a fixed set of chunks.

    Term statistics are computed once in the constructor; a changed
    knowledge base gets a new index.
    """

    k1 = 1.5
    b = 0.75

    def __init__(self, chunks: dict[str, str]):
        self.chunks = dict(chunks)
        self._term_counts = {chunk_id: Counter(tokenize(text)) for chunk_id, text in self.chunks.items()}
        self._lengths = {chunk_id: sum(counts.values()) for chunk_id, counts in self._term_counts.items()}
        self._avg_length = sum(self._lengths.values()) / len(self._lengths) if self._lengths else 0.0

        total = len(self.chunks)
        document_frequency = Counter(term for counts in self._term_counts.values() for term in counts)
        self._idf = {
            term: math.log((total - df + 0.5) / (df + 0.5) + 1)
            for term, df in document_frequency.items()
        }

    def __len__(self) -> int:
        return len(self.chunks)

    def search(self, query: str, k: int = DEFAULT_TOP_K) -> list[tuple[str, float]]:
        """(chunk_id, score) pairs with a positive score, best first."""
        terms = [term for term in tokenize(query) if term in self._idf]
        if not terms:
            return []

        scored = []
        for chunk_id, counts in self._term_counts.items():
            norm = self.k1 * (1 - self.b + self.b * self._lengths[chunk_id] / (self._avg_length or 1.0))
            score = sum(
                self._idf[term] * counts[term] * (self.k1 + 1) / (counts[term] + norm)
                for term in terms
                if counts[term]
            )
            if score > 0:
                scored.append((chunk_id, score))

        scored.sort(key=lambda item: item[1], reverse=True)
        return scored[:k]


@dataclass
class KnowledgeFile:
    """A transcript file in the knowledge base directory."""

    name: str
    size: int
    type: str
    uploaded: datetime

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "size": f"{round(self.size / 1024)} KB",
            "type": self.type,
            "uploaded": self.uploaded.date().isoformat(),
            "status": "processed",
        }


class KnowledgeBase:
    """
    Transcript directory plus its BM25 chunk index.

    Usage:
        kb = KnowledgeBase("./data/transcricoes")
        kb.reload()
        context = kb.context_for("Como acessar o estado Alpha?")
    """

    def __init__(
        self,
        directory: str | Path,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: int = CHUNK_OVERLAP,
        top_k: int = DEFAULT_TOP_K,
    ):
        self.directory = Path(directory)
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.top_k = top_k
        self._index = BM25Index({})
        self.using_fallback = False
        self._loaded = False

    @property
    def chunk_count(self) -> int:
        return len(self._index)

    def _read_documents(self) -> list[tuple[str, str]]:
        if not self.directory.is_dir():
            return []

        documents = []
        for path in sorted(self.directory.iterdir()):
            if path.suffix.lower() in SUPPORTED_EXTENSIONS and path.is_file():
                documents.append((path.name, path.read_text(encoding="utf-8", errors="ignore")))
        return documents

    def reload(self) -> int:
        """
        Rebuild the index from the transcript directory.

        Returns:
            Number of indexed chunks
        """
        documents = self._read_documents()
        self.using_fallback = not documents
        if self.using_fallback:
            logger.info("No transcripts found, using built-in knowledge base")
            documents = [(f"exemplo-{i + 1}", text) for i, text in enumerate(FALLBACK_DOCUMENTS)]

        index = BM25Index({
            f"{source}#{position}": chunk
            for source, text in documents
            for position, chunk in enumerate(split_text(text, self.chunk_size, self.chunk_overlap))
        })

        self._index = index
        self._loaded = True
        logger.info(f"Knowledge base loaded: {len(documents)} documents, {len(index)} chunks")
        return len(index)

    def search(self, question: str, k: Optional[int] = None) -> list[str]:
        """Best matching chunks for a question."""
        if not self._loaded:
            self.reload()
        results = self._index.search(question, k=k or self.top_k)
        return [self._index.chunks[chunk_id] for chunk_id, _ in results]

    def context_for(self, question: str) -> str:
        chunks = self.search(question)
        if not chunks:
            return NO_CONTEXT
        return "\n\n".join(chunks)

    # -------------------------------------------------------------------------
    # File management
    # -------------------------------------------------------------------------

    def list_files(self) -> list[KnowledgeFile]:
        if not self.directory.is_dir():
            return []
        files = []
        for path in sorted(self.directory.iterdir()):
            if not path.is_file():
                continue
            stat = path.stat()
            files.append(
                KnowledgeFile(
                    name=path.name,
                    size=stat.st_size,
                    type=path.suffix.lstrip(".").lower() or "text",
                    uploaded=datetime.fromtimestamp(stat.st_mtime),
                )
            )
        return files

    def add_file(self, filename: str, content: bytes) -> KnowledgeFile:
        """
        Store a transcript file. The index is not rebuilt.

        Raises:
            ValueError: For unsupported extensions or unsafe names
        """
        name = Path(filename or "").name
        extension = Path(name).suffix.lower()
        if extension not in SUPPORTED_EXTENSIONS:
            raise ValueError("Tipo de arquivo não permitido. Apenas TXT e MD são aceitos.")

        stored_name = f"{int(datetime.utcnow().timestamp() * 1000)}_{name}"
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / stored_name
        path.write_bytes(content)

        logger.info(f"Knowledge base file added: {stored_name}")
        stat = path.stat()
        return KnowledgeFile(
            name=stored_name,
            size=stat.st_size,
            type=extension.lstrip("."),
            uploaded=datetime.fromtimestamp(stat.st_mtime),
        )

    def remove_file(self, name: str) -> bool:
        safe_name = Path(name).name
        if safe_name != name:
            return False
        path = self.directory / safe_name
        if not path.is_file():
            return False
        path.unlink()
        logger.info(f"Knowledge base file removed: {safe_name}")
        return True
