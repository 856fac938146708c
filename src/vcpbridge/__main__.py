from vcpbridge.cli import main

raise SystemExit(main())
