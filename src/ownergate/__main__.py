from ownergate.cli import main

raise SystemExit(main())
