# localec/factory.py
import os
from typing import Optional

from localec.compiler import TranslationCompiler
from localec.config import LocalecConfig, load_config
from localec.providers.factory import build_router
from localec.storage.ledger import Ledger


def build_compiler(
    config_path:  Optional[str]           = None,
    db_path:      Optional[str]           = None,
    config:       Optional[LocalecConfig] = None,
    with_router:  bool                    = True,
) -> TranslationCompiler:
    """
    Ensambla el TranslationCompiler con todas sus dependencias.
    Punto de entrada único para el CLI y los tests de integración.

    with_router=False sirve para los comandos que no llaman a ningún
    modelo (status, check, import): no exigen API keys.
    """
    config = config or load_config(config_path)
    router = build_router(config) if with_router else None
    ledger = Ledger(db_path=(
        db_path
        or os.environ.get("LOCALEC_LEDGER_PATH")
        or str(config.resolve(config.advanced.ledger_path))
    ))

    return TranslationCompiler(config=config, ledger=ledger, router=router)
