# Services layer for quoting and booking
