"""
Configuración global de pytest para dmg-timer

Agrega el directorio raíz al sys.path para importar dmg_timer y main.py
sin instalar el paquete.
"""

import sys
from pathlib import Path

project_root = Path(__file__).parent.parent.absolute()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))
