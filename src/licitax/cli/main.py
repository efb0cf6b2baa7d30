"""Main CLI entry point."""

import argparse
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from licitax.models.status import BidStatus


def main(argv: Optional[list[str]] = None) -> None:
    """Parse args and dispatch to subcommands."""
    parser = argparse.ArgumentParser(prog="licitax", description="Dispute room and bid management")
    parser.add_argument(
        "--db",
        type=Path,
        default=Path(os.environ.get("LICITAX_DB") or "licitax.db"),
        help="Path to SQLite database (default: $LICITAX_DB or licitax.db)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("licitax.yaml"),
        help="Company settings YAML (missing file uses defaults)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # bid
    bid_parser = subparsers.add_parser("bid", help="Manage bids (licitações)")
    bid_sub = bid_parser.add_subparsers(dest="action", required=True)

    add_parser = bid_sub.add_parser("add", help="Register a new bid")
    add_parser.add_argument("--numero", required=True, help="Tender number, e.g. PE 001/2024")
    add_parser.add_argument("--cliente-id", required=True)
    add_parser.add_argument("--cliente-nome", required=True)
    add_parser.add_argument("--cliente-cnpj", default=None)
    add_parser.add_argument("--orgao", default=None, help="Buying agency")
    add_parser.add_argument("--modalidade", default=None)
    add_parser.add_argument("--plataforma", default=None)
    add_parser.add_argument("--data-inicio", default=None, help="Session date (YYYY-MM-DD)")
    add_parser.add_argument("--valor-cobrado", default="0", help="Advisory fee, e.g. 1500 or 'R$ 1.500,00'")
    add_parser.add_argument("--valor-referencia", default=None, help="Tender reference value")
    add_parser.add_argument(
        "--status",
        default=BidStatus.AGUARDANDO_ANALISE.value,
        choices=[s.value for s in BidStatus if s not in _ROOM_STATUSES],
    )

    show_parser = bid_sub.add_parser("show", help="Show a bid")
    show_parser.add_argument("bid_id")

    list_parser = bid_sub.add_parser("list", help="List bids")
    list_parser.add_argument("--status", default=None, choices=[s.value for s in BidStatus])

    item_parser = bid_sub.add_parser("add-item", help="Add a proposal item (only while AGUARDANDO_DISPUTA)")
    item_parser.add_argument("bid_id")
    item_parser.add_argument("--item-id", required=True)
    item_parser.add_argument("--lote", default=None)
    item_parser.add_argument("--descricao", default="")
    item_parser.add_argument("--unidade", default="UN")
    item_parser.add_argument("--quantidade", type=int, required=True)
    item_parser.add_argument("--valor-estimado", default=None, help="Estimated unit price")

    rm_item_parser = bid_sub.add_parser("remove-item", help="Remove a proposal item")
    rm_item_parser.add_argument("bid_id")
    rm_item_parser.add_argument("--item-id", required=True)

    status_parser = bid_sub.add_parser("set-status", help="Move a bid outside the dispute room flow")
    status_parser.add_argument("bid_id")
    status_parser.add_argument("status", choices=[s.value for s in BidStatus if s not in _ROOM_STATUSES])

    delete_parser = bid_sub.add_parser("delete", help="Delete a bid and its pending debit")
    delete_parser.add_argument("bid_id")

    # dispute
    dispute_parser = subparsers.add_parser("dispute", help="Dispute room (sala de disputa)")
    dispute_sub = dispute_parser.add_subparsers(dest="action", required=True)

    dispute_sub.add_parser("queue", help="Bids awaiting or in dispute")

    for name, help_text in (
        ("configure", "Preview the client ceiling for a limit"),
        ("start", "Start the dispute with the given limit"),
    ):
        p = dispute_sub.add_parser(name, help=help_text)
        p.add_argument("bid_id")
        p.add_argument("--referencia", default=None, help="Tender reference value (default: stored value)")
        p.add_argument("--limite-tipo", choices=["valor", "percentual"], default="valor")
        p.add_argument("--limite-valor", required=True, help="Amount (valor) or 0-100 (percentual)")
        _add_operator_args(p)

    msg_parser = dispute_sub.add_parser("message", help="Append a message to the dispute journal")
    msg_parser.add_argument("bid_id")
    msg_parser.add_argument("texto")
    _add_operator_args(msg_parser)

    st_parser = dispute_sub.add_parser("status", help="Show dispute state and elapsed time")
    st_parser.add_argument("bid_id")

    for name, help_text in (
        ("finalize", "Conclude a live dispute with its outcome"),
        ("amend", "Re-record the outcome of a concluded dispute"),
    ):
        p = dispute_sub.add_parser(name, help=help_text)
        p.add_argument("bid_id")
        won = p.add_mutually_exclusive_group(required=True)
        won.add_argument("--venceu", dest="cliente_venceu", action="store_true", default=None)
        won.add_argument("--perdeu", dest="cliente_venceu", action="store_false")
        p.add_argument("--posicao", default=None, help="Client's final position when lost")
        p.add_argument(
            "--preco",
            action="append",
            default=[],
            metavar="ITEM=VALOR",
            help="Final unit price per item (repeatable)",
        )
        p.add_argument("--observacoes", default=None)
        p.add_argument(
            "--output-dir",
            type=Path,
            default=None,
            help="Where to write the PDFs (default: $LICITAX_OUTPUT_DIR or documentos)",
        )
        _add_operator_args(p)

    # homologate
    hom_parser = subparsers.add_parser("homologate", help="Homologate a bid and create its debit")
    hom_parser.add_argument("bid_id")
    hom_parser.add_argument(
        "--send",
        action="store_true",
        help="Only send a won dispute to homologation (EM_HOMOLOGACAO)",
    )

    # debits
    debits_parser = subparsers.add_parser("debits", help="Client fee debits")
    debits_sub = debits_parser.add_subparsers(dest="action", required=True)
    debits_sub.add_parser("list", help="List debits")
    ds_parser = debits_sub.add_parser("set-status", help="Update a debit's finance status")
    ds_parser.add_argument("debit_id")
    ds_parser.add_argument("status", choices=["PENDENTE", "PAGO", "ENVIADO_FINANCEIRO"])

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "bid":
        _run_bid(args)
    elif args.command == "dispute":
        _run_dispute(args)
    elif args.command == "homologate":
        _run_homologate(args)
    elif args.command == "debits":
        _run_debits(args)
    else:
        parser.print_help()


# Statuses only reachable through the dispute room or homologation commands.
_ROOM_STATUSES = frozenset(
    {
        BidStatus.EM_DISPUTA,
        BidStatus.DISPUTA_CONCLUIDA,
        BidStatus.EM_HOMOLOGACAO,
        BidStatus.PROCESSO_HOMOLOGADO,
    }
)


def _add_operator_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--operador", default=os.environ.get("USER") or "Operador", help="Operator name")
    p.add_argument("--operador-cpf", default=None)


def _configure_logging(verbose: bool) -> None:
    level = "DEBUG" if verbose else os.environ.get("LICITAX_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _operator(args: argparse.Namespace):
    from licitax.models.bid import Operator

    return Operator(id=args.operador, display_name=args.operador, cpf=args.operador_cpf)


def _company(args: argparse.Namespace):
    from licitax.models.company import CompanyConfig

    return CompanyConfig.from_yaml(args.config)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str, ensure_ascii=False))


def _emit_result(result) -> None:
    """Print an ActionResult; failures exit with status 1."""
    _print_json(result.model_dump(mode="json", exclude_none=True))
    if not result.ok:
        raise SystemExit(1)


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise SystemExit("Invalid date format. Use YYYY-MM-DD.")


def _parse_money(value: Optional[str], flag: str):
    from licitax.money import as_decimal

    if value is None:
        return None
    parsed = as_decimal(value)
    if parsed is None:
        raise SystemExit(f"Invalid amount for {flag}: {value!r}")
    return parsed


def _parse_prices(pairs: list[str]) -> dict[str, str]:
    prices: dict[str, str] = {}
    for pair in pairs:
        item_id, sep, value = pair.partition("=")
        if not sep or not item_id.strip():
            raise SystemExit(f"Invalid --preco {pair!r}. Use ITEM=VALOR.")
        prices[item_id.strip()] = value.strip()
    return prices


def _run_bid(args: argparse.Namespace) -> None:
    """Run bid command."""
    from licitax.dispute import add_proposal_item, remove_proposal_item
    from licitax.dispute.results import ActionResult
    from licitax.models.bid import ProposalItem, new_bid
    from licitax.store import DebitStore, SqliteBidRepository

    repo = SqliteBidRepository(args.db)

    if args.action == "add":
        bid = new_bid(
            numero=args.numero,
            cliente_id=args.cliente_id,
            cliente_nome=args.cliente_nome,
            status=BidStatus(args.status),
            cliente_cnpj=args.cliente_cnpj,
            orgao_comprador=args.orgao,
            modalidade=args.modalidade,
            plataforma=args.plataforma,
            data_inicio=_parse_date(args.data_inicio),
            valor_cobrado=_parse_money(args.valor_cobrado, "--valor-cobrado"),
            valor_referencia_edital=_parse_money(args.valor_referencia, "--valor-referencia"),
        )
        try:
            repo.add(bid)
        except ValueError as e:
            raise SystemExit(str(e))
        _print_json(bid.model_dump(mode="json"))
    elif args.action == "show":
        bid = repo.get(args.bid_id)
        if bid is None:
            raise SystemExit(f"Bid {args.bid_id} not found")
        _print_json(bid.model_dump(mode="json"))
    elif args.action == "list":
        bids = repo.get_by_status(args.status) if args.status else repo.list_all()
        _print_json([b.model_dump(mode="json") for b in bids])
    elif args.action == "add-item":
        item = ProposalItem(
            id=args.item_id,
            lote=args.lote,
            descricao=args.descricao,
            unidade=args.unidade,
            quantidade=args.quantidade,
            valor_unitario_estimado=_parse_money(args.valor_estimado, "--valor-estimado"),
        )
        try:
            _emit_result(add_proposal_item(repo, args.bid_id, item))
        except ValueError as e:
            raise SystemExit(str(e))
    elif args.action == "remove-item":
        try:
            _emit_result(remove_proposal_item(repo, args.bid_id, args.item_id))
        except ValueError as e:
            raise SystemExit(str(e))
    elif args.action == "set-status":
        bid = repo.get(args.bid_id)
        if bid is None:
            _emit_result(ActionResult.failure("not_found", "Licitação não encontrada."))
        if bid.status in _ROOM_STATUSES:
            _emit_result(
                ActionResult.failure("state", "Use os comandos 'dispute' ou 'homologate' para esta licitação.", bid)
            )
        if not repo.patch(args.bid_id, {"status": BidStatus(args.status)}):
            _emit_result(ActionResult.failure("persistence", "Não foi possível atualizar o status.", bid))
        _emit_result(ActionResult.success(repo.get(args.bid_id)))
    elif args.action == "delete":
        if not repo.delete(args.bid_id):
            raise SystemExit(f"Bid {args.bid_id} not found")
        removed_debit = DebitStore(args.db).delete_pending(args.bid_id)
        _print_json({"deleted": args.bid_id, "pending_debit_removed": removed_debit})


def _run_dispute(args: argparse.Namespace) -> None:
    """Run dispute command."""
    from licitax.dispute import DisputeSession, OutcomeInput, dispute_queue
    from licitax.documents import PdfDocumentEmitter
    from licitax.models.status import status_label
    from licitax.store import SqliteBidRepository

    repo = SqliteBidRepository(args.db)

    if args.action == "queue":
        _print_json(
            [
                {
                    "id": b.id,
                    "numero": b.numero,
                    "cliente_nome": b.cliente_nome,
                    "status": b.status.value,
                    "status_label": status_label(b.status),
                    "data_inicio": b.data_inicio,
                }
                for b in dispute_queue(repo)
            ]
        )
        return

    emitter = None
    company = None
    if args.action in ("finalize", "amend"):
        company = _company(args)
        emitter = PdfDocumentEmitter(args.output_dir)

    with DisputeSession(args.bid_id, repo, emitter=emitter, company=company) as session:
        loaded = session.load()
        if not loaded.ok:
            _emit_result(loaded)

        if args.action in ("configure", "start"):
            changes = {"limite_tipo": args.limite_tipo, "limite_valor": args.limite_valor}
            if args.referencia is not None:
                changes["valor_referencia_edital"] = args.referencia
            result = session.configure(**changes)
            if args.action == "start":
                result = session.start(_operator(args))
            _emit_result(result)
        elif args.action == "message":
            _emit_result(session.append_message(args.texto, _operator(args)))
        elif args.action == "status":
            bid = loaded.bid
            log = bid.disputa_log
            _print_json(
                {
                    "id": bid.id,
                    "numero": bid.numero,
                    "status": bid.status.value,
                    "status_label": status_label(bid.status),
                    "tempo_decorrido": session.elapsed_display,
                    "teto": bid.disputa_config.valor_calculado_ate_onde_pode_chegar
                    if bid.disputa_config
                    else loaded.ceiling,
                    "mensagens": len(log.mensagens) if log else 0,
                    "cliente_venceu": log.cliente_venceu if log else None,
                    "valor_final": log.valor_final_proposta_cliente if log else None,
                }
            )
        elif args.action in ("finalize", "amend"):
            outcome = OutcomeInput(
                cliente_venceu=args.cliente_venceu,
                posicao_cliente=args.posicao,
                precos_unitarios=_parse_prices(args.preco),
                observacoes=args.observacoes,
            )
            if args.action == "finalize":
                _emit_result(session.finalize(outcome, _operator(args)))
            else:
                _emit_result(session.amend_outcome(outcome, _operator(args)))


def _run_homologate(args: argparse.Namespace) -> None:
    """Run homologate command."""
    from licitax.billing import homologate, send_to_homologation
    from licitax.store import DebitStore, SqliteBidRepository

    repo = SqliteBidRepository(args.db)
    if args.send:
        _emit_result(send_to_homologation(repo, args.bid_id))
        return
    _emit_result(homologate(repo, DebitStore(args.db), args.bid_id, company=_company(args)))


def _run_debits(args: argparse.Namespace) -> None:
    """Run debits command."""
    from licitax.store import DebitStore

    store = DebitStore(args.db)
    if args.action == "list":
        _print_json([d.model_dump(mode="json") for d in store.list_all()])
    elif args.action == "set-status":
        if not store.update_status(args.debit_id, args.status):
            print(f"Debit {args.debit_id} not found", file=sys.stderr)
            raise SystemExit(1)
        _print_json(store.get(args.debit_id).model_dump(mode="json"))


if __name__ == "__main__":
    main()
