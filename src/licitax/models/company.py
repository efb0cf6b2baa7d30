"""Advisory firm settings used on generated documents and debits."""

from pathlib import Path
from typing import Optional

try:
    import yaml
except ModuleNotFoundError as e:
    raise ModuleNotFoundError(
        "PyYAML is required for company config loading. Run: poetry install"
    ) from e
from pydantic import BaseModel, Field


class CompanyConfig(BaseModel):
    """Company settings ("configurações da empresa")."""

    razao_social: str = "Sua Assessoria Ltda"
    nome_fantasia: Optional[str] = None
    cnpj: str = "00.000.000/0001-00"
    email: Optional[str] = None
    telefone: Optional[str] = None

    endereco_rua: Optional[str] = None
    endereco_numero: Optional[str] = None
    endereco_bairro: Optional[str] = None
    endereco_cidade: Optional[str] = None
    endereco_cep: Optional[str] = None

    banco: Optional[str] = None
    agencia: Optional[str] = None
    conta: Optional[str] = None
    chave_pix: Optional[str] = None
    dia_vencimento_padrao: int = Field(default=15, ge=1, le=31)

    logo_path: Optional[Path] = None
    declaracao_template: Optional[str] = Field(
        default=None,
        description="Declaration text with {{placeholders}} appended to the final proposal",
    )

    @property
    def display_name(self) -> str:
        return self.nome_fantasia or self.razao_social

    @classmethod
    def from_yaml(cls, path: str | Path) -> "CompanyConfig":
        """Load settings from YAML. Supports nested (empresa/financeiro) or flat structure."""
        path = Path(path)
        if not path.exists():
            return cls()
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        empresa = data.get("empresa", {})
        financeiro = data.get("financeiro", {})

        flat: dict = {}
        for key in cls.model_fields:
            for source in (empresa, financeiro, data):
                if key in source and source[key] is not None:
                    flat[key] = source[key]
                    break
        return cls.model_validate(flat)
