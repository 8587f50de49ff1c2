import sys

from hermes_voice.main import main

sys.exit(main())
