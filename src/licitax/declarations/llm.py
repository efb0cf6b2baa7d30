"""Declaration filling. Supports Ollama (local), OpenAI API, or a placeholder stub."""

import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from licitax.models.bid import Bid, utcnow
from licitax.models.company import CompanyConfig

logger = logging.getLogger(__name__)

_MESES = (
    "Janeiro",
    "Fevereiro",
    "Março",
    "Abril",
    "Maio",
    "Junho",
    "Julho",
    "Agosto",
    "Setembro",
    "Outubro",
    "Novembro",
    "Dezembro",
)

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


@dataclass
class DeclarationResult:
    """Filled declaration text and which provider produced it."""

    text: str
    provider: str  # ollama | openai | stub


def declaration_values(bid: Bid, company: CompanyConfig, now: Optional[datetime] = None) -> dict[str, str]:
    """Placeholder values available to declaration templates."""
    now = now or utcnow()
    mes = _MESES[now.month - 1]
    endereco = ", ".join(
        p for p in (company.endereco_rua, company.endereco_numero, company.endereco_bairro) if p
    )
    return {
        "razaoSocial": company.razao_social,
        "nomeFantasia": company.nome_fantasia or company.razao_social,
        "cnpj": company.cnpj,
        "enderecoCompleto": endereco,
        "email": company.email or "",
        "telefone": company.telefone or "",
        "clienteNome": bid.cliente_nome,
        "clienteCnpj": bid.cliente_cnpj or "",
        "numeroLicitacao": bid.numero,
        "orgaoComprador": bid.orgao_comprador or "",
        "modalidade": bid.modalidade or "",
        "diaAtual": str(now.day),
        "mesAtual": mes,
        "anoAtual": str(now.year),
        "cidadeEmpresa": company.endereco_cidade or "Nossa Cidade",
        "dataExtenso": f"{now.day} de {mes} de {now.year}",
    }


def fill_declaration(
    template: str,
    bid: Bid,
    company: CompanyConfig,
    *,
    now: Optional[datetime] = None,
) -> DeclarationResult:
    """
    Fill a declaration template. Uses LICITAX_LLM_PROVIDER env:
    - "ollama" -> Ollama local
    - "openai" -> OpenAI API (needs OPENAI_API_KEY)
    - unset/other -> stub (direct placeholder substitution)
    Any provider failure falls back to the stub.
    """
    values = declaration_values(bid, company, now)
    provider = (os.environ.get("LICITAX_LLM_PROVIDER") or "").lower()
    if provider == "ollama":
        return _fill_ollama(template, values)
    if provider == "openai":
        return _fill_openai(template, values)
    return _fill_stub(template, values)


def _fill_stub(template: str, values: dict[str, str]) -> DeclarationResult:
    """Replace {{key}} with its value; unknown placeholders are left as-is."""

    def _sub(m: re.Match) -> str:
        return values.get(m.group(1), m.group(0))

    return DeclarationResult(text=_PLACEHOLDER.sub(_sub, template), provider="stub")


def _fill_ollama(template: str, values: dict[str, str]) -> DeclarationResult:
    """Fill using local Ollama."""
    import httpx

    model = os.environ.get("LICITAX_LLM_MODEL", "llama3.2")
    prompt = _build_prompt(template, values)
    try:
        resp = httpx.post(
            "http://localhost:11434/api/generate",
            json={"model": model, "prompt": prompt, "stream": False},
            timeout=60,
        )
        resp.raise_for_status()
        text = _clean_response(resp.json().get("response", ""))
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Ollama declaration fill failed, using stub: %s", e)
        return _fill_stub(template, values)
    if not text:
        return _fill_stub(template, values)
    return DeclarationResult(text=text, provider="ollama")


def _fill_openai(template: str, values: dict[str, str]) -> DeclarationResult:
    """Fill using OpenAI API."""
    api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        return _fill_stub(template, values)
    from openai import OpenAI, OpenAIError

    client = OpenAI(api_key=api_key)
    prompt = _build_prompt(template, values)
    try:
        response = client.chat.completions.create(
            model=os.environ.get("LICITAX_LLM_MODEL", "gpt-4o-mini"),
            messages=[{"role": "user", "content": prompt}],
            temperature=0.1,
        )
        text = _clean_response(response.choices[0].message.content or "")
    except OpenAIError as e:
        logger.warning("OpenAI declaration fill failed, using stub: %s", e)
        return _fill_stub(template, values)
    if not text:
        return _fill_stub(template, values)
    return DeclarationResult(text=text, provider="openai")


def _build_prompt(template: str, values: dict[str, str]) -> str:
    """Build fill prompt."""
    data = "\n".join(f"- {k}: {v}" for k, v in values.items() if v)
    return f"""Você preenche declarações para licitações públicas brasileiras.
Substitua cada marcador {{{{chave}}}} do modelo pelo dado correspondente abaixo.
Não altere o restante do texto. Responda SOMENTE com a declaração preenchida.

Dados:
{data}

Modelo:
{template}

Declaração:"""


def _clean_response(text: str) -> str:
    """Strip markdown fences and surrounding whitespace from an LLM reply."""
    text = text.strip()
    fenced = re.match(r"^```(?:\w+)?\n(.*)\n```$", text, re.DOTALL)
    if fenced:
        text = fenced.group(1).strip()
    return text
