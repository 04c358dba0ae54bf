"""Run with: python -m pointcloudviewer [file]"""
from pointcloudviewer.main import main

if __name__ == "__main__":
    main()
