"""
Achievement milestones shown on the personal analytics page.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional, Sequence


@dataclass
class Milestone:
    id: str
    title: str
    description: str
    category: str
    reached: bool
    date: Optional[datetime] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class MilestoneInputs:
    """
    Activity facts needed to evaluate milestones.

    The ``*_dates`` sequences hold creation times oldest first, at least
    as many as the highest threshold that uses them.
    """

    diary_total: int = 0
    diary_streak: int = 0
    diary_dates: Sequence[datetime] = ()
    practice_total: int = 0
    practice_seconds: int = 0
    practice_dates: Sequence[datetime] = ()
    conversation_total: int = 0
    conversation_dates: Sequence[datetime] = ()
    manifestation_total: int = 0
    manifestation_dates: Sequence[datetime] = ()


def _nth(dates: Sequence[datetime], n: int) -> Optional[datetime]:
    return dates[n - 1] if len(dates) >= n else None


def build_milestones(facts: MilestoneInputs) -> list[Milestone]:
    """Evaluate every milestone against the user's activity."""
    practice_minutes = facts.practice_seconds // 60

    def counted(id, title, description, category, total, dates, threshold):
        reached = total >= threshold
        return Milestone(
            id=id,
            title=title,
            description=description,
            category=category,
            reached=reached,
            date=_nth(dates, threshold) if reached else None,
        )

    return [
        counted(
            "diario-first",
            "Primeiro Registro no Diário",
            "Você fez seu primeiro registro no Diário Quântico!",
            "diario", facts.diary_total, facts.diary_dates, 1,
        ),
        counted(
            "diario-7days",
            "7 Dias de Registros",
            "Você registrou 7 dias no Diário Quântico!",
            "diario", facts.diary_total, facts.diary_dates, 7,
        ),
        counted(
            "diario-30days",
            "30 Dias de Registros",
            "Você registrou 30 dias no Diário Quântico!",
            "diario", facts.diary_total, facts.diary_dates, 30,
        ),
        Milestone(
            id="diario-streak-7",
            title="7 Dias Consecutivos de Registros",
            description="Você manteve uma sequência de 7 dias consecutivos de registros!",
            category="diario",
            reached=facts.diary_streak >= 7,
        ),
        counted(
            "pratica-first",
            "Primeira Prática Completa",
            "Você concluiu sua primeira prática guiada!",
            "pratica", facts.practice_total, facts.practice_dates, 1,
        ),
        counted(
            "pratica-10",
            "10 Práticas Concluídas",
            "Você concluiu 10 práticas guiadas!",
            "pratica", facts.practice_total, facts.practice_dates, 10,
        ),
        Milestone(
            id="pratica-60min",
            title="1 Hora de Práticas",
            description="Você completou mais de 60 minutos de práticas guiadas!",
            category="pratica",
            reached=practice_minutes >= 60,
        ),
        counted(
            "luzia-first",
            "Primeira Conversa com LUZ IA",
            "Você iniciou sua primeira conversa com a LUZ IA!",
            "luzia", facts.conversation_total, facts.conversation_dates, 1,
        ),
        counted(
            "manifestacao-first",
            "Primeira Ferramenta de Manifestação",
            "Você criou sua primeira ferramenta de manifestação!",
            "manifestacao", facts.manifestation_total, facts.manifestation_dates, 1,
        ),
    ]
