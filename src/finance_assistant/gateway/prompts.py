"""
Prompts for the Gemini gateway.

Each request carries a system instruction (persona or task description)
chosen by (role, modality), plus a short task instruction placed after
the media payload. The assistant speaks Brazilian Portuguese.

Extraction prompts ask for a bare JSON object, but the reply is still
treated as untrusted text by the ExtractionValidator.
"""

from enum import Enum
from textwrap import dedent
from typing import Optional


class PromptRole(str, Enum):
    """What the model is asked to do."""
    CHAT = "chat"
    RECEIPT_EXTRACTION = "receipt-extraction"
    TRANSACTION_EXTRACTION = "transaction-extraction"


class Modality(str, Enum):
    """What kind of input accompanies the instruction."""
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"


_EXTRACTION_FORMAT = """\
IMPORTANTE: Retorne APENAS um JSON válido no seguinte formato, sem explicações adicionais:
{
  "name": "nome da transação",
  "amount": valor_numérico,
  "date": "YYYY-MM-DD",
  "type": "expense" ou "income",
  "description": "descrição adicional se houver",
  "categoryName": "categoria sugerida se possível identificar"
}
"""

SYSTEM_PROMPTS: dict[tuple[PromptRole, Modality], str] = {
    (PromptRole.CHAT, Modality.TEXT): dedent("""\
        Você é um assistente financeiro especializado em economia pessoal brasileira.
        Suas respostas devem ser práticas, educativas e focadas em ajudar com finanças pessoais.
        Mantenha um tom conversacional e amigável, sempre em português brasileiro.
        Foque em dicas práticas de economia, organização financeira, investimentos básicos e educação financeira.
        """),
    (PromptRole.CHAT, Modality.IMAGE): dedent("""\
        Você é um assistente financeiro especializado em economia pessoal brasileira.
        Analise a imagem fornecida e responda de forma útil sobre finanças pessoais.
        Se a imagem for uma nota fiscal, comprovante ou recibo, analise e forneça insights financeiros.
        Mantenha um tom conversacional e amigável, sempre em português brasileiro.
        """),
    (PromptRole.CHAT, Modality.AUDIO): dedent("""\
        Você é um assistente financeiro especializado em economia pessoal brasileira.
        Transcreva o áudio e responda de forma útil sobre finanças pessoais.
        Se o áudio mencionar uma transação financeira, forneça insights e sugestões.
        Mantenha um tom conversacional e amigável, sempre em português brasileiro.
        """),
    (PromptRole.RECEIPT_EXTRACTION, Modality.IMAGE): dedent("""\
        Você é um assistente especializado em extrair informações de notas fiscais e comprovantes brasileiros.
        Analise a imagem fornecida e extraia as seguintes informações:
        1. Nome/Descrição da transação (produto ou serviço principal)
        2. Valor total (em reais, apenas números)
        3. Data da transação (formato YYYY-MM-DD)
        4. Tipo: "expense" (despesa) ou "income" (receita)
        """) + "\n" + _EXTRACTION_FORMAT + dedent("""
        Se não conseguir identificar alguma informação, use valores padrão:
        - date: data de hoje no formato YYYY-MM-DD
        - type: "expense" (a menos que claramente seja uma receita)
        - amount: 0 se não conseguir identificar
        """),
    (PromptRole.TRANSACTION_EXTRACTION, Modality.AUDIO): dedent("""\
        Você é um assistente especializado em transcrever e extrair informações de transações financeiras em português brasileiro.
        Transcreva o áudio e extraia as seguintes informações:
        1. Nome/Descrição da transação
        2. Valor total (em reais, apenas números)
        3. Data da transação mencionada (se não mencionada, use hoje - formato YYYY-MM-DD)
        4. Tipo: "expense" (despesa) ou "income" (receita)
        """) + "\n" + _EXTRACTION_FORMAT + dedent("""
        Exemplos:
        - "Comprei comida no supermercado por 150 reais" -> {"name": "Supermercado", "amount": 150, "type": "expense", ...}
        - "Recebi 5000 de salário hoje" -> {"name": "Salário", "amount": 5000, "type": "income", ...}
        """),
}

# Text placed after the media payload. Text-only chat sends the user's
# message instead.
TASK_INSTRUCTIONS: dict[tuple[PromptRole, Modality], str] = {
    (PromptRole.CHAT, Modality.IMAGE): (
        "Analise esta imagem e me ajude com informações financeiras relevantes."
    ),
    (PromptRole.CHAT, Modality.AUDIO): (
        "Transcreva este áudio e me ajude com informações financeiras relevantes."
    ),
    (PromptRole.RECEIPT_EXTRACTION, Modality.IMAGE): (
        "Extraia as informações desta nota fiscal ou comprovante."
    ),
    (PromptRole.TRANSACTION_EXTRACTION, Modality.AUDIO): (
        "Transcreva e extraia as informações de transação deste áudio."
    ),
}


def supports(role: PromptRole, modality: Modality) -> bool:
    return (role, modality) in SYSTEM_PROMPTS


def build_system_instruction(
    role: PromptRole,
    modality: Modality,
    context: Optional[str] = None,
) -> str:
    """
    System instruction for a request, with the user's financial context
    appended when there is one.

    Raises:
        ValueError: If the role is not available for this modality
    """
    try:
        prompt = SYSTEM_PROMPTS[(role, modality)]
    except KeyError:
        raise ValueError(
            f"Role {role.value!r} is not supported for {modality.value} input"
        ) from None
    if context and context.strip():
        prompt = f"{prompt}\nContexto do usuário:\n{context.strip()}\n"
    return prompt


def task_instruction(role: PromptRole, modality: Modality) -> str:
    return TASK_INSTRUCTIONS[(role, modality)]
