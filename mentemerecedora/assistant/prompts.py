"""
LUZ IA Prompts

Prompt templates keyed by prompt type. Every template carries the
``{question}`` and ``{context}`` placeholders.
"""

from typing import Optional

from loguru import logger

DEFAULT_PROMPT = "default"


class PromptTemplates:
    """
    Registry of prompt templates for LUZ IA.

    Starts with the built-in templates; admins may replace or add
    templates at runtime.
    """

    SYSTEM_PROMPT = (
        "Você é a LUZ IA, assistente de desenvolvimento pessoal do portal "
        "Mente Merecedora. Responda em português do Brasil."
    )

    DEFAULT_TEMPLATE = """Você é a LUZ IA, uma assistente de desenvolvimento pessoal baseada na metodologia do curso "Jornada Mente Merecedora".

Seu objetivo é ajudar a usuária em sua jornada de transformação pessoal, com foco em:
- Identificar e superar crenças limitantes
- Desenvolver uma nova autoimagem
- Elevar a vibração financeira
- Acessar estados mentais de alta performance
- Aplicar técnicas de manifestação consciente

Use sempre uma linguagem acolhedora, inspiradora e transformadora. Evite termos técnicos desnecessários e mantenha o foco na prática.

Por favor, responda à seguinte pergunta usando seu conhecimento do curso e sua sabedoria:
{question}

Contexto relevante do curso:
{context}"""

    AUTOIMAGEM_TEMPLATE = """Você é a LUZ IA, especialista em transformação da autoimagem segundo a metodologia do curso "Jornada Mente Merecedora".

Ajude a usuária a identificar como está a sua autoimagem atual e como elevar sua percepção de si mesma.
Foque em aspectos como:
- Diálogo interno
- Padrões de pensamento limitantes sobre si
- Técnicas para reprogramação da autoimagem
- Visualização da melhor versão de si

Use sempre uma linguagem acolhedora e transformadora.

Pergunta sobre autoimagem:
{question}

Contexto relevante do curso:
{context}"""

    FINANCEIRO_TEMPLATE = """Você é a LUZ IA, especialista em transformação da vibração financeira segundo a metodologia do curso "Jornada Mente Merecedora".

Ajude a usuária a identificar padrões limitantes em sua relação com dinheiro e prosperidade.
Foque em aspectos como:
- Crenças familiares sobre dinheiro
- Padrões de escassez vs. abundância
- Desbloqueio da recepção financeira
- O merecimento como base da riqueza

Use sempre uma linguagem acolhedora e transformadora.

Pergunta sobre vibração financeira:
{question}

Contexto relevante do curso:
{context}"""

    MEDITACAO_TEMPLATE = """Você é a LUZ IA, guia para estados meditativos Alpha segundo a metodologia do curso "Jornada Mente Merecedora".

Ajude a usuária a acessar estados mentais elevados através da meditação.
Foque em aspectos como:
- Técnicas de respiração
- Visualização guiada
- Acesso ao estado Alpha
- Reprogramação mental em estado relaxado

Use sempre uma linguagem acolhedora, suave e guiadora.

Pergunta sobre meditação:
{question}

Contexto relevante do curso:
{context}"""

    HISTORY_TEMPLATE = """Conversa até aqui:
{history}"""

    def __init__(self, templates: Optional[dict[str, str]] = None):
        self._templates: dict[str, str] = {
            DEFAULT_PROMPT: self.DEFAULT_TEMPLATE,
            "autoimagem": self.AUTOIMAGEM_TEMPLATE,
            "financeiro": self.FINANCEIRO_TEMPLATE,
            "meditacao": self.MEDITACAO_TEMPLATE,
        }
        if templates:
            self._templates.update(templates)

    def names(self) -> list[str]:
        return list(self._templates)

    def items(self) -> list[dict]:
        return [{"name": name, "template": template} for name, template in self._templates.items()]

    def get(self, prompt_type: Optional[str]) -> str:
        """Template for a prompt type; unknown types fall back to default."""
        return self._templates.get(prompt_type or DEFAULT_PROMPT, self._templates[DEFAULT_PROMPT])

    def resolve_name(self, prompt_type: Optional[str]) -> str:
        if prompt_type and prompt_type in self._templates:
            return prompt_type
        return DEFAULT_PROMPT

    def update_prompt(self, name: str, template: str) -> None:
        """
        Replace or add a template.

        Raises:
            ValueError: When the name or the template is empty
        """
        if not name or not template or not template.strip():
            raise ValueError("Nome do prompt e conteúdo do template são obrigatórios")

        self._templates[name] = template
        logger.info(f"Prompt '{name}' updated")

    @classmethod
    def format_conversation_history(
        cls,
        history: list[tuple[str, str]],
        max_turns: int = 6,
    ) -> str:
        """
        Format conversation history.

        Args:
            history: List of (role, message) tuples
            max_turns: Maximum turns to include
        """
        if not history:
            return ""

        formatted = []
        for role, message in history[-max_turns:]:
            speaker = "Usuária" if role == "user" else "LUZ IA"
            formatted.append(f"{speaker}: {message}")

        return cls.HISTORY_TEMPLATE.format(history="\n".join(formatted))

    def build_prompt(
        self,
        question: str,
        context: str,
        history: Optional[list[tuple[str, str]]] = None,
        prompt_type: str = DEFAULT_PROMPT,
    ) -> tuple[str, str]:
        """
        Build the complete prompt.

        Returns:
            (system_prompt, user_prompt) tuple
        """
        template = self.get(prompt_type)
        # str.replace keeps stray braces in admin-edited templates harmless
        user_prompt = template.replace("{question}", question).replace("{context}", context)

        system_prompt = self.SYSTEM_PROMPT
        if history:
            system_prompt = f"{system_prompt}\n\n{self.format_conversation_history(history)}"

        return system_prompt, user_prompt
