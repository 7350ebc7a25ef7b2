"""
pytest設定

未インストールの状態でもパッケージをインポートできるようにする
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
