"""Allow running as: python -m cotizador"""

from cotizador.main import main

if __name__ == "__main__":
    main()
